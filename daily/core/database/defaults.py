"""Database defaults."""
import uuid

import ulid


def gen_ulid() -> uuid.UUID:
    """
    Generate a ULID.

    More info here: https://github.com/ulid/spec. 48 bits of timestamp + 80 bits of randomness, stored as a UUID.
    Rows are still ordered by created_at, the ULID only breaks ties.
    """
    return ulid.new().uuid
