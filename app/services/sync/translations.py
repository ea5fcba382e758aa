"""Static lookup tables for upstream display names and error codes.

The upstream competition center only publishes Chinese labels. Hero and
weapon names are stored in English so that stat ids ("{stage_id}-{name}")
and the dashboard stay readable; names missing from the tables are kept
as-is.
"""
from types import MappingProxyType
from typing import Mapping, Optional

HERO_NAMES: Mapping[str, str] = MappingProxyType({
    '魏轻': 'Wei Qing',
    '刘炼': 'Liu Lian',
    '蓝梦': 'Lan Meng',
    '顾清寒': 'Gu Qinghan',
    '特木尔': 'Temur',
    '席拉': 'Xila',
    '胡为': 'Hu Wei',
    '张起灵': 'Zhang Qiling',
    '玉玲珑': 'Yu Linglong',
    '殷紫萍': 'Yin Ziping',
    '迦南': 'Canaan',
    '崔三娘': 'Cui Sanniang',
})

WEAPON_NAMES: Mapping[str, str] = MappingProxyType({
    '太刀': 'Katana',
    '匕首': 'Dagger',
    '长枪': 'Spear',
    '大刀': 'Greatsword',
    '长剑': 'Longsword',
    '双刀': 'Dual Blades',
    '弓': 'Bow',
    '铁扇': 'Iron Fan',
    '长鞭': 'Whip',
    '短刀': 'Short Sword',
})

ERROR_CODES: Mapping[int, str] = MappingProxyType({
    20000: 'Server error',
    20001: 'Request failed',
    20002: 'Invalid parameters',
})

ERROR_MESSAGES: Mapping[str, str] = MappingProxyType({
    '参数非法': 'Invalid parameters',
    '成功': 'Success',
    '失败': 'Failed',
})


def translate_hero_name(name: Optional[str]) -> Optional[str]:
    """
    Map a hero display name to English.

    Examples:
        >>> translate_hero_name('迦南')
        'Canaan'
        >>> translate_hero_name('Akos')
        'Akos'
    """
    if name is None:
        return None
    return HERO_NAMES.get(name, name)


def translate_weapon_name(name: Optional[str]) -> Optional[str]:
    """
    Map a weapon display name to English.

    Examples:
        >>> translate_weapon_name('太刀')
        'Katana'
    """
    if name is None:
        return None
    return WEAPON_NAMES.get(name, name)


def translate_error(code: Optional[int], message: Optional[str]) -> str:
    """
    Turn an upstream (code, message) pair into an English error message.

    Known codes win over the message; known messages are translated;
    anything else is passed through verbatim.
    """
    if code and code in ERROR_CODES:
        return ERROR_CODES[code]
    if message is None:
        return f"Upstream error code {code}"
    return ERROR_MESSAGES.get(message, message)
