HEADER = "EncId,Ally,Name,Job,Duration,Damage,DPS,Kills,Deaths,Healed,DamageTaken,OverHealPct,Class"


def act_row(name, ally="T", job="WAR", damage=1000, duration=600, kills=0, deaths=0,
            dps="10.5", healed=0, taken=0, overheal="0%", extra="pvp"):
    return f"abc123,{ally},{name},{job},{duration},{damage},{dps},{kills},{deaths},{healed},{taken},{overheal},{extra}"


def act_log(*rows, header=HEADER):
    return "\n".join([header, *rows]) + "\n"
