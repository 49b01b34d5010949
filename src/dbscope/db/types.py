"""Driver type codes and their display names."""

VARCHAR = 0
INTEGER = 1
REAL = 2
DATE = 3
TIME = 4
TIMESTAMP = 5
OBJECT = 6
NUMERIC = 7
INTERVAL = 12

TYPE_NAMES: dict[int, str] = {
    VARCHAR: "VARCHAR",
    INTEGER: "INTEGER",
    REAL: "REAL",
    DATE: "DATE",
    TIME: "TIME",
    TIMESTAMP: "TIMESTAMP",
    OBJECT: "OBJECT",
    NUMERIC: "NUMERIC",
    INTERVAL: "INTERVAL",
}


def type_name(type_code: int) -> str:
    """Return the name for a driver type code, or ``UNKNOWN(<code>)``."""
    return TYPE_NAMES.get(type_code, f"UNKNOWN({type_code})")
