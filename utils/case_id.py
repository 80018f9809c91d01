import secrets
import time


def generate_case_id(prefix: str = "CSRU", clock=time.time) -> str:
    """
    PREFIX-<ms timestamp, hex>-<8 random bytes, hex>, all upper case.
    The timestamp part keeps ids roughly time ordered.
    """
    timestamp = format(int(clock() * 1000), "X")
    random_part = secrets.token_hex(8).upper()
    return f"{prefix}-{timestamp}-{random_part}"
