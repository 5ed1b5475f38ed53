# merci/utils/convert.py

_TRUE = ("1", "true", "yes", "on")

def to_bool(value) -> bool:
    # form and DOM values arrive as strings: "false" / "0" are false
    if isinstance(value, str):
        return value.strip().lower() in _TRUE
    return bool(value)
