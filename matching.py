"""Name comparison policy for clustering and schedule lookup.

Operators type vessel and port names by hand ("MAERSK SEOUL" vs
"MAERSK SEOUL V.123"), so two names match when they are equal or one
contains the other, ignoring case and surrounding whitespace.
"""


def normalize(name) -> str:
    return (name or "").strip().upper()


def names_match(candidate, wanted) -> bool:
    a = normalize(candidate)
    b = normalize(wanted)
    if a == b:
        return True
    if not a or not b:
        return False
    return a in b or b in a


def vessels_match(candidate, wanted) -> bool:
    return names_match(candidate, wanted)


def ports_match(candidate, wanted) -> bool:
    return names_match(candidate, wanted)
