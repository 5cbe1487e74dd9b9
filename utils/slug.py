import re

_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def slugify(name: str) -> str:
    """
    Build a URL slug from a display name.

    Lowercases, collapses every run of non-alphanumeric characters into a
    single "-" and trims dashes from both ends:
        "Home & Garden!" -> "home-garden"
    """
    return _NON_ALNUM.sub('-', name.lower()).strip('-')
