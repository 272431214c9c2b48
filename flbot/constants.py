"""Game constants: alliances, venues, jobs and the ACT column type table."""

from typing import Dict, List, Tuple

# Alliance value -> Japanese display label
TEAM_LABELS: Dict[str, str] = {
    'Maelstrom': '黒渦団',
    'Twin Adders': '双蛇党',
    'Immortal Flames': '不滅隊',
}

# Alliance value -> key used in the stored "points" mapping
TEAM_POINT_KEYS: Dict[str, str] = {
    'Maelstrom': 'Maelstrom',
    'Twin Adders': 'TwinAdders',
    'Immortal Flames': 'ImmortalFlames',
}

# Fixed order, also the tie-break order when scores are equal
TEAMS: List[str] = ['Maelstrom', 'Twin Adders', 'Immortal Flames']

# Accepted spellings for the ACTRECORD team argument
TEAM_ALIASES: Dict[str, str] = {
    'maelstrom': 'Maelstrom',
    'twinadders': 'Twin Adders',
    'twin adders': 'Twin Adders',
    'immortalflames': 'Immortal Flames',
    'immortal flames': 'Immortal Flames',
    '黒渦団': 'Maelstrom',
    '双蛇党': 'Twin Adders',
    '不滅隊': 'Immortal Flames',
}

# Winning score lower bounds, highest first
VENUE_THRESHOLDS: List[Tuple[int, str]] = [
    (2400, '外縁遺跡群　制圧戦'),
    (2000, 'フィールド・オブ・グローリー　砕氷戦'),
    (1400, 'オンサル・ハカイル　終節戦'),
    (700, 'シールロック　争奪戦'),
]
VENUE_UNKNOWN = 'フィールド不明 (ポイント不足/時間切れ)'

JOB_EMOJIS: Dict[str, str] = {
    'PLD': '🛡️', 'WAR': '🪓', 'DRK': '⚫', 'GNB': '💥',
    'WHM': '🌸', 'SCH': '🧚', 'AST': '🔮', 'SGE': '🟢',
    'MNK': '👊', 'DRG': '🐉', 'NIN': '🥷', 'SAM': '🔪',
    'RPR': '💀', 'VPR': '🐍', 'BRD': '🏹', 'MCH': '🔫',
    'DNC': '💃', 'BLM': '🧙‍♀️', 'SMN': '🦄', 'RDM': '🗡️',
    'PCT': '🎨',
}
UNKNOWN_JOB_EMOJI = '❓'

# ACT "Ally" column codes
ALLY_FRIENDLY = 'T'
ALLY_ENEMY = 'F'

NONE_SENTINEL = 'None'
PLACEHOLDER = 'N/A'

# Non-player row that ACT reports like an actor
LIMIT_BREAK = 'Limit Break'

REQUIRED_HEADERS: Tuple[str, ...] = ('Name', 'Job', 'Damage')

# Lower-cased ACT column -> coercion target
INTEGER_FIELDS: Tuple[str, ...] = (
    'duration', 'damage', 'kills', 'healed', 'heals', 'powerdrain',
    'powerreplenish', 'hits', 'crithits', 'blocked', 'misses', 'swings',
    'healstaken', 'damagetaken', 'deaths', 'threatdelta', 'directhitcount',
    'critdirecthitcount',
)
FLOAT_FIELDS: Tuple[str, ...] = (
    'dps', 'encdps', 'enchps', 'damageperc', 'healedperc', 'tohit',
    'critdamperc', 'crithealperc', 'parrypct', 'blockpct', 'inctohit',
    'overhealpct', 'directhitpct', 'critdirecthitpct',
)
STRING_FIELDS: Tuple[str, ...] = ('name', 'job', 'ally', 'encid')

# Value ACT writes for "no data"
EMPTY_TOKEN = '--'
