def format_number(value) -> str:
    """10.0 -> "10", 0.5 -> "0.5"."""
    try:
        f = float(value)
    except (TypeError, ValueError):
        return str(value)
    if f.is_integer():
        return str(int(f))
    return repr(f)
