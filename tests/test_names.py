from flbot.names import build_full_name, capitalize_name, is_self_placeholder, self_token, suggest_names


def test_self_token():
    assert self_token("Y.o.u") == "YOU"
    assert self_token(" you ") == "YOU"
    assert self_token("") == ""


def test_is_self_placeholder():
    assert is_self_placeholder("YOU")
    assert is_self_placeholder("you!")
    assert not is_self_placeholder("Yourself")


def test_capitalize_name():
    assert capitalize_name("tARO") == "Taro"
    assert capitalize_name("  y'shtola ") == "Y'shtola"
    assert capitalize_name(None) == ""


def test_build_full_name():
    assert build_full_name("Taro", "Yamada") == "Taro Yamada"
    assert build_full_name(" Taro ", " Yamada ") == "Taro Yamada"
    assert build_full_name("Taro", None) is None
    assert build_full_name("", "Yamada") is None
    assert build_full_name(None, None) is None


def test_suggest_names():
    known = ["Taro Yamada", "Hanako Sato", "Taro Yamada", ""]
    assert suggest_names("Taro Yamda", known) == ["Taro Yamada"]
    assert suggest_names("ｔａｒｏ ｙａｍａｄａ", known) == ["Taro Yamada"]
    assert suggest_names("Completely Different", known) == []
    assert suggest_names("Taro Yamada", []) == []
