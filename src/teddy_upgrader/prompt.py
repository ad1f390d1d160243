"""Interactive upgrade confirmation."""

from __future__ import annotations

from collections.abc import Callable


def confirm_upgrade(
    current: str,
    latest: str,
    notes_url: str,
    input_fn: Callable[[str], str] = input,
) -> bool:
    """Ask the operator whether to upgrade. Only an exact ``Y`` confirms."""
    print()
    print("A new version of Teddy is available!")
    print(f"Current version: {current}")
    print(f"Latest version: {latest}")
    print(f"Please read the release notes at {notes_url} before upgrading.")
    try:
        response = input_fn(f"Do you wish to upgrade Teddy to v{latest}? [Y|n]: ")
    except EOFError:
        response = ""

    confirmed = response == "Y"
    print("Upgrade confirmed. Upgrading Teddy..." if confirmed else "Upgrade declined.")
    print()
    return confirmed
