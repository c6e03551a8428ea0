"""Layering narration - describes the z-order in words for the generation prompt."""

from typing import Sequence


def describe_layers(names: Sequence[str]) -> list[str]:
    """One clause per layer, back to front.

    Args:
        names: Character names ordered back to front

    Returns:
        Clauses in the same order as ``names``; empty for fewer than two layers
    """
    if len(names) < 2:
        return []

    last = len(names) - 1
    clauses = []
    for index, name in enumerate(names):
        if index == 0:
            clauses.append(f"{name} is in the background")
        elif index == last:
            clauses.append(f"{name} is in the foreground")
        else:
            clauses.append(
                f"{name} is behind {names[index + 1]} and in front of {names[index - 1]}"
            )
    return clauses


def narrate(names: Sequence[str]) -> str:
    """Describe relative depth for an ordered layer stack.

    >>> narrate(["A", "B", "C"])
    'A is in the background. B is behind C and in front of A. C is in the foreground.'

    A single layer has no layering to describe and yields an empty string.
    """
    clauses = describe_layers(names)
    if not clauses:
        return ""
    return ". ".join(clauses) + "."
