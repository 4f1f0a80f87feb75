import time


def new_partner_user_id(prefix: str = "user") -> str:
    """Tracking id correlating a checkout with later status queries."""
    return f"{prefix}_{int(time.time() * 1000)}"
