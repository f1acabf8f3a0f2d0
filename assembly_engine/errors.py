"""Error taxonomy shared by digestion, ligation and assembly services."""

# purpose: separate invalid input, cut geometry faults, incompatible ends and broken engine invariants
# status: experimental
# related_docs: DESIGN.md

from __future__ import annotations

from typing import Any, Iterable, Sequence


class AssemblyError(ValueError):
    """Base error for failures caused by the supplied sequences or enzymes."""


class InputError(AssemblyError):
    """Raised when a request cannot be evaluated as supplied."""


class UnknownEnzymeError(InputError):
    """Raised when an enzyme name has no catalog record."""

    def __init__(self, name: str, classes: Iterable[str] = ("TypeII", "TypeIIs")) -> None:
        self.name = name
        self.classes = tuple(classes)
        super().__init__(
            f"enzyme {name} not found in catalog; available classes: {', '.join(self.classes)}"
        )


class InvalidSequenceError(InputError):
    """Raised when a sequence contains symbols outside the IUPAC DNA alphabet."""


class EmptyPartError(InputError):
    """Raised when an assembly part has no sequence."""


class VectorRotationError(InputError):
    """Raised when a vector cannot be re-oriented on a single recognition site."""


class SiteCountError(InputError):
    """Raised when a sequence does not carry the expected number of sites."""


class WobbleExpansionError(InputError):
    """Raised when a degenerate recognition site expands past the configured cap."""


class PartDesignError(InputError):
    """Raised when assembly ends cannot be added to a part."""


class GeometryError(AssemblyError):
    """Base error for cut offsets that cannot be placed on the sequence."""


class CutOutOfRangeError(GeometryError):
    """Raised when a cut or slice falls outside a linear sequence."""


class DoubleWrapError(GeometryError):
    """Raised when a circular coordinate would need more than one wrap."""


class IncompatibleEndsError(AssemblyError):
    """Raised when no fragment pair between two sets shares compatible ends."""

    def __init__(
        self,
        message: str,
        *,
        partial_fragments: Sequence[Any] = (),
        joined_pair: tuple[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.partial_fragments = list(partial_fragments)
        self.joined_pair = joined_pair


class NoCircularProductError(IncompatibleEndsError):
    """Raised when ligation to the vector leaves no valid circular product."""


class AssemblyFailedError(IncompatibleEndsError):
    """Raised when no part ordering produced a plasmid."""

    def __init__(
        self,
        message: str,
        *,
        errors: Sequence[str] = (),
        partial_fragments: Sequence[Any] = (),
        joined_pair: tuple[str, str] | None = None,
        permutations_tried: int = 0,
        stopped_early: bool = False,
        stop_reason: str | None = None,
    ) -> None:
        super().__init__(message, partial_fragments=partial_fragments, joined_pair=joined_pair)
        self.errors = list(errors)
        self.permutations_tried = permutations_tried
        self.stopped_early = stopped_early
        self.stop_reason = stop_reason


class InternalInvariantError(RuntimeError):
    """Raised when the engine's own bookkeeping is inconsistent."""


class FragmentInvariantError(InternalInvariantError):
    """Raised when a fragment carries an overhang and an underhang on one end."""
