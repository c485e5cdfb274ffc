from __future__ import annotations


def parse_command(text: str, prefix: str = "/") -> tuple[str, str] | None:
    text = text.strip()
    if not prefix or not text.startswith(prefix):
        return None
    parts = text[len(prefix):].split(None, 1)
    if not parts:
        return None
    command = parts[0].lower()
    args = parts[1].strip() if len(parts) > 1 else ""
    return (command, args)
