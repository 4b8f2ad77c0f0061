"""Version utilities for Roundcube compatibility checks.

Versions are normalized the way Composer does (four numeric components plus
an optional stability suffix) and compared with PHP ``version_compare``
ordering, so that ``min-version``/``max-version`` constraints behave the same
as they do for Composer users.
"""

import re

DEV_BRANCH_PREFIX = "dev-"

_NORMALIZE_PATTERN = re.compile(
    r"^v?(?P<numbers>\d+(?:\.\d+){0,3})"
    r"(?:[._-]?(?P<stability>stable|beta|b|rc|alpha|a|patch|pl|p|dev)"
    r"(?P<suffix>(?:[.-]?\d+)*))?$",
    re.IGNORECASE,
)

_STABILITY_NAMES = {
    "stable": "",
    "a": "alpha",
    "alpha": "alpha",
    "b": "beta",
    "beta": "beta",
    "rc": "RC",
    "p": "patch",
    "pl": "patch",
    "patch": "patch",
    "dev": "dev",
}

# PHP version_compare() ordering of special forms; "#" stands for any number
_SPECIAL_FORMS = {
    "dev": 0,
    "alpha": 1,
    "a": 1,
    "beta": 2,
    "b": 2,
    "rc": 3,
    "#": 4,
    "pl": 5,
    "p": 5,
}

_RCMAIL_VERSION_PATTERN = re.compile(r"define\(.RCMAIL_VERSION.,\s*.([0-9.]+[a-z-]*)?")

OPERATORS = {
    "==": lambda c: c == 0,
    "!=": lambda c: c != 0,
    "<": lambda c: c < 0,
    "<=": lambda c: c <= 0,
    ">": lambda c: c > 0,
    ">=": lambda c: c >= 0,
}


def is_dev_branch(version: str) -> bool:
    """Check whether a version string names a development branch."""
    return version.startswith(DEV_BRANCH_PREFIX)


def normalize_version(version: str) -> str:
    """Normalize a version string.

    A ``-git`` suffix marks an unreleased build and is treated as the
    highest patch level (``1.6-git`` becomes ``1.6.999.0``).

    Args:
        version: Version string (e.g., "1.6", "1.5.2", "1.6-beta", "1.7-git")

    Returns:
        Normalized version (e.g., "1.6.0.0", "1.6.0.0-beta")

    Raises:
        ValueError: If the string is not a valid version
    """
    version = version.strip()
    if not version:
        raise ValueError("Invalid version: empty string")

    if is_dev_branch(version):
        return version

    version = version.replace("-git", ".999")

    match = _NORMALIZE_PATTERN.match(version)
    if not match:
        raise ValueError(f"Invalid version: {version}")

    numbers = match.group("numbers").split(".")
    numbers += ["0"] * (4 - len(numbers))
    normalized = ".".join(str(int(n)) for n in numbers)

    stability = match.group("stability")
    if stability:
        name = _STABILITY_NAMES[stability.lower()]
        if name:
            suffix = (match.group("suffix") or "").lstrip(".-")
            normalized += f"-{name}{suffix}"

    return normalized


def _canonicalize(version: str) -> list[str]:
    """Split a version the way PHP does before comparing."""
    version = re.sub(r"[-_+]", ".", version)
    version = re.sub(r"(?<=\d)(?=[^\d.])|(?<=[^\d.])(?=\d)", ".", version)
    return [part for part in version.split(".") if part]


def _special_form(part: str) -> int:
    for name, order in _SPECIAL_FORMS.items():
        if part.lower().startswith(name):
            return order
    return -1


def _compare_parts(a: str, b: str) -> int:
    a_digit, b_digit = a.isdigit(), b.isdigit()
    if a_digit and b_digit:
        return (int(a) > int(b)) - (int(a) < int(b))
    if not a_digit and not b_digit:
        fa, fb = _special_form(a), _special_form(b)
        return (fa > fb) - (fa < fb)
    if a_digit:
        return _compare_parts("#", b)
    return _compare_parts(a, "#")


def compare_versions(a: str, b: str) -> int:
    """Compare two versions with PHP ``version_compare`` semantics.

    Args:
        a: First version
        b: Second version

    Returns:
        Negative if a < b, zero if equal, positive if a > b
    """
    parts_a = _canonicalize(a)
    parts_b = _canonicalize(b)

    for pa, pb in zip(parts_a, parts_b):
        result = _compare_parts(pa, pb)
        if result:
            return result

    # Remaining parts decide: numbers win, special forms are compared with "#"
    if len(parts_a) > len(parts_b):
        rest = parts_a[len(parts_b)]
        return 1 if rest.isdigit() else _compare_parts(rest, "#")
    if len(parts_b) > len(parts_a):
        rest = parts_b[len(parts_a)]
        return -1 if rest.isdigit() else _compare_parts("#", rest)
    return 0


def version_compare(a: str, b: str, operator: str, compare_branches: bool = False) -> bool:
    """Evaluate ``a <operator> b``.

    Development branches (``dev-*``) are only equal to themselves and never
    match anything else unless compare_branches is set.

    Args:
        a: Left version
        b: Right version
        operator: One of ==, !=, <, <=, >, >=
        compare_branches: Compare branch names as versions

    Returns:
        True if the comparison holds

    Raises:
        ValueError: If the operator is unknown
    """
    if operator not in OPERATORS:
        raise ValueError(f"Unknown version operator: {operator}")

    a_branch = is_dev_branch(a)
    b_branch = is_dev_branch(b)

    if a_branch and b_branch:
        return operator == "==" and a == b

    if not compare_branches and (a_branch or b_branch):
        return False

    return OPERATORS[operator](compare_versions(a, b))


def detect_roundcube_version(iniset_text: str) -> str | None:
    """Read ``RCMAIL_VERSION`` from the contents of ``iniset.php``.

    Args:
        iniset_text: Contents of program/include/iniset.php

    Returns:
        The version string as defined (e.g., "1.6.5" or "1.7-git"), or None
    """
    match = _RCMAIL_VERSION_PATTERN.search(iniset_text)
    if not match or not match.group(1):
        return None
    return match.group(1)

