""" Utility for deriving stable store ids from secret paths. """

import hashlib


def path_to_id(path: str) -> str:
    # Lookup handle only, not a security primitive.
    return hashlib.md5(path.encode("utf-8")).hexdigest()
