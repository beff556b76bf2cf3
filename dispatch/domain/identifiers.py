"""Human-readable booking identifiers: ``PREFIX`` + zero-padded sequence."""


def format_identifier(prefix: str, seq: int, width: int = 6) -> str:
    """``format_identifier("RES", 123)`` -> ``"RES000123"``."""
    if seq < 1:
        raise ValueError(f"Sequence values start at 1, got {seq}")
    return f"{prefix}{seq:0{width}d}"

