"""Key bindings for the preview window."""

from __future__ import annotations

from typing import Dict


KEY_COMMANDS: Dict[str, str] = {
    "s": "toggle_sounds",
    "f": "toggle_flash",
    "h": "help",
    " ": "continue",
    "r": "repeat",
    "q": "quit",
}


def key_to_command(key: int) -> str:
    if key == -1 or key == 255:
        return "none"
    if key == 27:
        return "quit"
    return KEY_COMMANDS.get(chr(key).lower(), "none")
