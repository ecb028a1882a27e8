"""Translate flow key chords into pywinauto ``send_keys`` syntax."""

from __future__ import annotations

MODIFIERS = {
    "ctrl": "^",
    "control": "^",
    "shift": "+",
    "alt": "%",
}

NAMED_KEYS = {
    "enter": "{ENTER}",
    "return": "{ENTER}",
    "tab": "{TAB}",
    "esc": "{ESC}",
    "escape": "{ESC}",
    "backspace": "{BACKSPACE}",
    "delete": "{DELETE}",
    "del": "{DELETE}",
    "insert": "{INSERT}",
    "home": "{HOME}",
    "end": "{END}",
    "pageup": "{PGUP}",
    "pagedown": "{PGDN}",
    "up": "{UP}",
    "down": "{DOWN}",
    "left": "{LEFT}",
    "right": "{RIGHT}",
    "space": "{SPACE}",
    "win": "{VK_LWIN}",
}

# Characters with a meaning in send_keys syntax.
_SPECIAL = set("+^%~(){}[]")


def escape_char(char: str) -> str:
    """One literal character as send_keys input."""
    if char in _SPECIAL:
        return "{" + char + "}"
    if char == "\n":
        return "{ENTER}"
    if char == "\t":
        return "{TAB}"
    if char == " ":
        return "{SPACE}"
    return char


def _key_token(name: str) -> str:
    lowered = name.strip().lower()
    if lowered in NAMED_KEYS:
        return NAMED_KEYS[lowered]
    if len(lowered) > 1 and lowered[0] == "f" and lowered[1:].isdigit():
        return "{" + lowered.upper() + "}"
    if len(name.strip()) == 1:
        return escape_char(lowered)
    raise ValueError(f"Unknown key name: '{name}'")


def to_send_keys(chord: str) -> str:
    """Convert ``"Ctrl+Shift+S"`` style chords into send_keys syntax.

    Space separated chords are sent in sequence (``"Ctrl+A Delete"``).
    Input already in send_keys syntax (containing ``{`` or starting with a
    modifier symbol) passes through unchanged.
    """
    text = chord.strip()
    if not text:
        raise ValueError("Key sequence cannot be empty")
    if "{" in text or text[0] in "^%~":
        return text

    out: list[str] = []
    for part in text.split():
        names = [n for n in part.split("+") if n] if part != "+" else ["+"]
        *mods, key = names
        prefix = ""
        for mod in mods:
            symbol = MODIFIERS.get(mod.strip().lower())
            if symbol is None:
                raise ValueError(f"Unknown modifier: '{mod}'")
            prefix += symbol
        out.append(prefix + _key_token(key))
    return "".join(out)
