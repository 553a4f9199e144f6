"""
Transaction-scoped locks and timeouts using PostgreSQL primitives.

Other backends (SQLite in local runs and tests) serialize writers on their
own, so both helpers become no-ops there.
"""
from contextlib import contextmanager

from django.db import connection


@contextmanager
def cart_lock(user_id: int):
    """
    Acquire advisory lock on a user's cart for the current transaction.

    Checkouts and cart writes of the same user wait on each other; users
    never block one another.

    Usage:
        with transaction.atomic(), cart_lock(user_id):
            # Read cart, create order, clear cart
            pass
    """
    if connection.vendor == "postgresql":
        with connection.cursor() as cursor:
            # Two-key form keeps cart locks apart from other advisory locks
            cursor.execute(
                "SELECT pg_advisory_xact_lock(hashtext('cart'), %s::int)",
                [user_id % 2147483647],
            )
    # Lock is automatically released when transaction ends
    yield


@contextmanager
def statement_timeout(milliseconds: int):
    """Abort any statement of the current transaction that runs too long."""
    if milliseconds and connection.vendor == "postgresql":
        with connection.cursor() as cursor:
            cursor.execute("SELECT set_config('statement_timeout', %s, true)", [str(int(milliseconds))])
    yield
