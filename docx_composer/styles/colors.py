"""
Color normalization.

Converts CSS color notations found in inline style declarations to the
``RRGGBB`` hex form used by ``w:color`` and ``w:shd``.
"""

import re
from typing import Optional, Tuple

NAMED_COLORS = {
    'black': (0, 0, 0),
    'white': (255, 255, 255),
    'red': (255, 0, 0),
    'lime': (0, 255, 0),
    'green': (0, 128, 0),
    'blue': (0, 0, 255),
    'yellow': (255, 255, 0),
    'cyan': (0, 255, 255),
    'aqua': (0, 255, 255),
    'magenta': (255, 0, 255),
    'fuchsia': (255, 0, 255),
    'silver': (192, 192, 192),
    'gray': (128, 128, 128),
    'grey': (128, 128, 128),
    'darkgray': (169, 169, 169),
    'darkgrey': (169, 169, 169),
    'lightgray': (211, 211, 211),
    'lightgrey': (211, 211, 211),
    'maroon': (128, 0, 0),
    'olive': (128, 128, 0),
    'purple': (128, 0, 128),
    'teal': (0, 128, 128),
    'navy': (0, 0, 128),
    'orange': (255, 165, 0),
    'pink': (255, 192, 203),
    'brown': (165, 42, 42),
    'gold': (255, 215, 0),
    'indigo': (75, 0, 130),
    'violet': (238, 130, 238),
    'darkred': (139, 0, 0),
    'darkgreen': (0, 100, 0),
    'darkblue': (0, 0, 139),
    'lightblue': (173, 216, 230),
    'lightgreen': (144, 238, 144),
    'lightyellow': (255, 255, 224),
}

_HEX_RE = re.compile(r'^#([0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$')
_RGB_RE = re.compile(r'^rgba?\(\s*([^)]*)\)$', re.IGNORECASE)


def rgb_to_hex(rgb: Tuple[int, int, int]) -> str:
    return '{:02X}{:02X}{:02X}'.format(*rgb)


def _channel(token: str) -> Optional[int]:
    token = token.strip()
    try:
        if token.endswith('%'):
            value = float(token[:-1]) * 255 / 100
        else:
            value = float(token)
    except ValueError:
        return None
    return max(0, min(255, int(round(value))))


def normalize_color(value: Optional[str]) -> Optional[str]:
    """
    Normalize a CSS color to upper-case ``RRGGBB``.

    Returns None for empty, ``transparent``, fully transparent ``rgba`` and
    unrecognised values.
    """
    if not value or not isinstance(value, str):
        return None
    value = value.strip().lower()
    if value in ('transparent', 'inherit', 'initial', 'none', 'currentcolor'):
        return None

    if value in NAMED_COLORS:
        return rgb_to_hex(NAMED_COLORS[value])

    match = _HEX_RE.match(value)
    if match:
        digits = match.group(1)
        if len(digits) in (3, 4):
            if len(digits) == 4 and digits[3] == '0':
                return None
            digits = ''.join(ch * 2 for ch in digits[:3])
        else:
            if len(digits) == 8 and digits[6:] == '00':
                return None
            digits = digits[:6]
        return digits.upper()

    match = _RGB_RE.match(value)
    if match:
        parts = re.split(r'[\s,/]+', match.group(1).strip())
        if len(parts) < 3:
            return None
        channels = [_channel(part) for part in parts[:3]]
        if any(channel is None for channel in channels):
            return None
        if len(parts) >= 4:
            alpha = parts[3]
            try:
                alpha_value = float(alpha[:-1]) / 100 if alpha.endswith('%') else float(alpha)
            except ValueError:
                return None
            if alpha_value <= 0:
                return None
        return rgb_to_hex(tuple(channels))

    return None
