"""Golden Gate assembly driver: exact-order joins and permutation search."""

# purpose: orchestrate vector rotation, part digestion and ligation into validated plasmid products
# status: experimental
# depends_on: assembly_engine.services.digestion, assembly_engine.services.ligation, assembly_engine.services.plasmid

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import TypeVar

from prometheus_client import Counter

from ..config import get_search_config
from ..errors import (
    AssemblyError,
    AssemblyFailedError,
    EmptyPartError,
    IncompatibleEndsError,
    InputError,
    NoCircularProductError,
    SiteCountError,
)
from ..positions import find_seq
from ..schemas.assembly import (
    AssemblyParameters,
    AssemblySearchConfig,
    AssemblySimulationResult,
    DNASequence,
    MultipleAssemblyReport,
    RestrictionEnzyme,
    RestrictionSiteSummary,
)
from ..sequence import reverse_complement
from .digestion import (
    DigestedFragment,
    EnzymeLike,
    digest_cuts,
    find_restriction_sites,
    make_fragments,
    resolve_enzymes,
)
from .enzymes import lookup_enzyme, lookup_type_iis
from .ligation import join_two_parts, rotate_vector_with_any
from .plasmid import PlasmidFeatureOracle

_logger = logging.getLogger(__name__)

ASSEMBLY_SIMULATIONS = Counter(
    "assembly_simulations_total", "Assembly simulations by outcome", ["status"]
)
DIAGNOSTIC_ENZYMES = ("BsaI", "SapI")

T = TypeVar("T")
DigestCache = dict[tuple[str, bool, tuple[str, ...]], list[DigestedFragment]]


@dataclass(slots=True)
class JoinResult:
    """Products of joining parts in one fixed order."""

    partials: list[DigestedFragment] = field(default_factory=list)
    plasmids: list[DNASequence] = field(default_factory=list)
    inserts: list[DigestedFragment] = field(default_factory=list)
    enzyme: RestrictionEnzyme | None = None


@dataclass(slots=True)
class AssemblyProducts:
    """Products collected over every part ordering that was tried."""

    partials: list[DigestedFragment] = field(default_factory=list)
    plasmids: list[DNASequence] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    permutations_tried: int = 0
    stopped_early: bool = False
    stop_reason: str | None = None
    joined_pair: tuple[str, str] | None = None


def iter_permutations(items: Iterable[T]) -> Iterator[tuple[T, ...]]:
    """Yield every ordering of items lazily using Heap's algorithm."""

    pool = list(items)
    size = len(pool)
    counters = [0] * size
    yield tuple(pool)
    index = 1
    while index < size:
        if counters[index] < index:
            swap = 0 if index % 2 == 0 else counters[index]
            pool[swap], pool[index] = pool[index], pool[swap]
            yield tuple(pool)
            counters[index] += 1
            index = 1
        else:
            counters[index] = 0
            index += 1


def same_circle(first: DNASequence, second: DNASequence) -> bool:
    """Return True when two circular sequences are rotations, on either strand."""

    if len(first.sequence) != len(second.sequence):
        return False
    doubled = first.sequence + first.sequence
    return second.sequence in doubled or reverse_complement(second.sequence) in doubled


def _unique_circles(plasmids: Iterable[DNASequence]) -> list[DNASequence]:
    unique: list[DNASequence] = []
    for plasmid in plasmids:
        if not any(same_circle(plasmid, existing) for existing in unique):
            unique.append(plasmid)
    return unique


def _unique_fragments(fragments: Iterable[DigestedFragment]) -> list[DigestedFragment]:
    return list(dict.fromkeys(fragments))


def _check_sequence(sequence: DNASequence | None, role: str) -> DNASequence:
    if sequence is None or not sequence.sequence:
        name = getattr(sequence, "name", None) or "<unnamed>"
        raise EmptyPartError(f"{role} {name} has no sequence")
    return sequence


def _assembly_fragments(
    sequence: DNASequence,
    enzymes: list[RestrictionEnzyme],
    cache: DigestCache | None,
) -> list[DigestedFragment]:
    key = (sequence.sequence, sequence.circular, tuple(enzyme.name for enzyme in enzymes))
    if cache is not None and key in cache:
        return cache[key]
    cuts = digest_cuts(sequence, enzymes)
    if not cuts:
        names = ", ".join(enzyme.name for enzyme in enzymes)
        raise SiteCountError(f"{sequence.name} is not cut by {names}")
    fragments = make_fragments(sequence, cuts)
    if cache is not None:
        cache[key] = fragments
    return fragments


def _first_cutting_enzyme(
    sequence: DNASequence, enzymes: list[RestrictionEnzyme]
) -> RestrictionEnzyme:
    for enzyme in enzymes:
        if digest_cuts(sequence, [enzyme]):
            return enzyme
    names = ", ".join(enzyme.name for enzyme in enzymes)
    raise SiteCountError(f"{sequence.name} is not cut by {names}")


def _insert_fragments(
    part: DNASequence, enzymes: list[RestrictionEnzyme], cache: DigestCache | None
) -> list[DigestedFragment]:
    fragments = [
        fragment for fragment in _assembly_fragments(part, enzymes, cache) if fragment.sticky_both_ends
    ]
    if not fragments:
        names = ", ".join(enzyme.name for enzyme in enzymes)
        raise SiteCountError(
            f"{part.name}: digestion with {names} leaves no fragment with sticky ends on both sides"
        )
    return fragments


def assemble_insert(
    parts: Sequence[DNASequence],
    enzymes: EnzymeLike | Sequence[EnzymeLike],
    *,
    allow_blunt: bool = False,
    cache: DigestCache | None = None,
) -> list[DigestedFragment]:
    """Ligate parts in order into linear insert candidates, without a vector."""

    # purpose: accumulate the running insert shared by exact-order joins and insert extraction
    resolved = resolve_enzymes(enzymes)
    if not parts:
        raise EmptyPartError("no parts supplied for assembly")
    checked = [_check_sequence(part, "part") for part in parts]
    inserts = _insert_fragments(checked[0], resolved, cache)
    previous = checked[0].name
    for part in checked[1:]:
        ligation = join_two_parts(
            inserts,
            _insert_fragments(part, resolved, cache),
            allow_blunt=allow_blunt,
            upstream_name=previous,
            downstream_name=part.name,
        )
        if ligation.plasmids:
            _logger.debug(
                "Dropping %d circle(s) closed by %s and %s without the vector",
                len(ligation.plasmids),
                previous,
                part.name,
            )
        if not ligation.partials:
            raise IncompatibleEndsError(
                f"{previous} and {part.name}: ends close on themselves, leaving no insert to extend"
            )
        inserts = _unique_fragments(ligation.partials)
        previous = part.name
    return inserts


def _product_problems(
    plasmid: DNASequence, inserts: Sequence[DigestedFragment], enzymes: list[RestrictionEnzyme]
) -> list[str]:
    problems: list[str] = []
    if not any(find_seq(plasmid.sequence, insert.top_strand, circular=True) for insert in inserts):
        problems.append("expected insert not found in product")
    for record in find_restriction_sites(plasmid, enzymes):
        if record.site_found:
            problems.append(
                f"{record.number_of_sites} {record.enzyme.name} site(s) remain at {record.position_summary()}"
            )
    return problems


def join_parts(
    vector: DNASequence,
    parts_in_order: Sequence[DNASequence],
    enzymes: EnzymeLike | Sequence[EnzymeLike],
    *,
    config: AssemblySearchConfig | None = None,
    cache: DigestCache | None = None,
) -> JoinResult:
    """Assemble parts in the given order into a vector.

    The vector is rotated onto the first enzyme with a usable site; later
    enzymes are only tried when earlier ones fail. That enzyme alone then
    digests the vector and parts, the parts are ligated one after another into
    a running insert, and the insert is finally ligated to the digested
    vector. Circular products must contain an insert and be free of its
    recognition site.
    """

    # purpose: exact-order join used directly for large designs and per permutation otherwise
    # inputs: vector, ordered parts, enzymes tried in order for vector rotation
    # outputs: JoinResult with partial fragments, validated plasmids and insert candidates
    config = config or get_search_config()
    resolved = resolve_enzymes(enzymes)
    if not resolved:
        raise InputError("at least one enzyme is required for assembly")
    vector = _check_sequence(vector, "vector")
    if not parts_in_order:
        raise EmptyPartError(f"no parts supplied for assembly into {vector.name}")
    parts = [_check_sequence(part, "part") for part in parts_in_order]

    if vector.circular:
        vector, chosen = rotate_vector_with_any(vector, resolved)
    else:
        chosen = _first_cutting_enzyme(vector, resolved)
    if chosen.name != resolved[0].name:
        _logger.info("Assembling %s with %s; %s did not fit", vector.name, chosen.name, resolved[0].name)
    vector_fragments = _assembly_fragments(vector, [chosen], cache)
    inserts = assemble_insert(
        parts, [chosen], allow_blunt=config.allow_blunt_ligation, cache=cache
    )

    last = parts[-1].name
    plasmid_name = "_".join([vector.name, *(part.name for part in parts)])
    try:
        ligation = join_two_parts(
            vector_fragments,
            inserts,
            allow_blunt=config.allow_blunt_ligation,
            upstream_name=vector.name,
            downstream_name=last,
            plasmid_name=plasmid_name,
        )
    except IncompatibleEndsError as exc:
        raise NoCircularProductError(f"{last} and {vector.name}: {exc}") from exc

    plasmids: list[DNASequence] = []
    rejected: list[str] = []
    for candidate in _unique_circles(ligation.plasmids):
        problems = _product_problems(candidate, inserts, [chosen])
        if problems:
            rejected.append("; ".join(problems))
        else:
            plasmids.append(candidate)
    if not plasmids:
        reason = "; ".join(rejected) or "ends do not close into a circle"
        previous = parts[-2].name if len(parts) > 1 else vector.name
        raise NoCircularProductError(
            f"{last} and {vector.name}: no valid circular product ({reason})",
            partial_fragments=ligation.partials,
            joined_pair=(previous, last) if ligation.partials else None,
        )
    if len(plasmids) > 1:
        plasmids = [
            plasmid.model_copy(update={"name": f"{plasmid_name}_{index}"})
            for index, plasmid in enumerate(plasmids, start=1)
        ]
    return JoinResult(partials=ligation.partials, plasmids=plasmids, inserts=inserts, enzyme=chosen)


def find_all_assembly_products(
    vector: DNASequence,
    parts: Sequence[DNASequence],
    enzymes: EnzymeLike | Sequence[EnzymeLike],
    *,
    config: AssemblySearchConfig | None = None,
    oracle: PlasmidFeatureOracle | None = None,
    should_cancel: Callable[[], bool] | None = None,
) -> AssemblyProducts:
    """Try every ordering of the parts and collect distinct plasmids.

    Incompatible orderings are recorded and skipped. When the number of
    orderings exceeds ``config.early_exit_permutations`` the search stops at
    the first plasmid the oracle judges plausible. Raises AssemblyFailedError
    when no ordering closes a plasmid.
    """

    # purpose: exhaustive-order search with early exit, budgets and cancellation between permutations
    config = config or get_search_config()
    resolved = resolve_enzymes(enzymes)
    total = math.factorial(len(parts))
    early_exit = total > config.early_exit_permutations
    deadline = (
        time.monotonic() + config.time_budget_seconds if config.time_budget_seconds else None
    )
    cache: DigestCache = {}
    products = AssemblyProducts()
    partials: list[DigestedFragment] = []

    for ordering in iter_permutations(parts):
        if should_cancel is not None and should_cancel():
            products.stop_reason = "cancelled"
        elif config.max_permutations is not None and products.permutations_tried >= config.max_permutations:
            products.stop_reason = f"permutation budget of {config.max_permutations} reached"
        elif deadline is not None and time.monotonic() > deadline:
            products.stop_reason = f"time budget of {config.time_budget_seconds}s reached"
        if products.stop_reason:
            products.stopped_early = True
            _logger.info("Stopping assembly search for %s: %s", vector.name, products.stop_reason)
            break

        products.permutations_tried += 1
        try:
            result = join_parts(vector, ordering, resolved, config=config, cache=cache)
        except IncompatibleEndsError as exc:
            _logger.debug("Ordering %s failed: %s", [part.name for part in ordering], exc)
            products.errors.append(str(exc))
            partials.extend(exc.partial_fragments)
            if exc.partial_fragments and exc.joined_pair:
                products.joined_pair = exc.joined_pair
            continue
        partials.extend(result.partials)
        products.plasmids = _unique_circles([*products.plasmids, *result.plasmids])
        if early_exit and oracle is not None:
            if any(oracle.check(plasmid).plausible for plasmid in result.plasmids):
                products.stopped_early = True
                products.stop_reason = "plausible plasmid found"
                _logger.info(
                    "Early exit after %d of %d orderings for %s",
                    products.permutations_tried,
                    total,
                    vector.name,
                )
                break

    products.partials = _unique_fragments(partials)
    if not products.plasmids:
        names = ", ".join(part.name for part in parts)
        detail = f" ({products.stop_reason})" if products.stop_reason else ""
        raise AssemblyFailedError(
            f"no ordering of {names} assembled into {vector.name} after "
            f"{products.permutations_tried} of {total} permutation(s){detail}",
            errors=products.errors,
            partial_fragments=products.partials,
            joined_pair=products.joined_pair,
            permutations_tried=products.permutations_tried,
            stopped_early=products.stopped_early,
            stop_reason=products.stop_reason,
        )
    return products


def _site_summaries(
    sequences: Sequence[DNASequence], enzyme: RestrictionEnzyme
) -> list[RestrictionSiteSummary]:
    enzymes = [enzyme]
    for name in DIAGNOSTIC_ENZYMES:
        if name.lower() != enzyme.name.lower():
            enzymes.append(lookup_enzyme(name))
    summaries: list[RestrictionSiteSummary] = []
    for sequence in sequences:
        for record in find_restriction_sites(sequence, enzymes):
            summaries.append(record.to_summary(sequence.name))
    return summaries


def assembly_simulate(
    params: AssemblyParameters,
    *,
    config: AssemblySearchConfig | None = None,
    oracle: PlasmidFeatureOracle | None = None,
) -> AssemblySimulationResult:
    """Simulate a Type IIs assembly and classify its outcome."""

    # purpose: entry point for API, CLI and batch runs
    # inputs: AssemblyParameters, optional search config and plasmid feature oracle
    # outputs: AssemblySimulationResult with status success, ambiguous, partial or failed
    # status: experimental
    config = config or get_search_config()
    enzyme = lookup_type_iis(params.enzyme_name)
    parts = params.parts_in_order
    exhaustive = len(parts) <= config.exhaustive_part_limit
    strategy = "exhaustive" if exhaustive else "exact_order"
    _logger.info(
        "Simulating %s: %d part(s) with %s using %s search",
        params.construct_name,
        len(parts),
        enzyme.name,
        strategy,
    )

    plasmids: list[DNASequence] = []
    partials: list[DigestedFragment] = []
    errors: list[str] = []
    tried = 1
    stopped_early = False
    stop_reason: str | None = None
    joined_pair: tuple[str, str] | None = None
    try:
        if exhaustive:
            found = find_all_assembly_products(
                params.vector, parts, [enzyme], config=config, oracle=oracle
            )
            plasmids, partials, errors = found.plasmids, found.partials, found.errors
            tried, stopped_early = found.permutations_tried, found.stopped_early
            stop_reason = found.stop_reason
        else:
            joined = join_parts(params.vector, parts, [enzyme], config=config)
            plasmids, partials = joined.plasmids, joined.partials
    except AssemblyFailedError as exc:
        errors = exc.errors or [str(exc)]
        partials = exc.partial_fragments
        tried = exc.permutations_tried or len(exc.errors) or 1
        stopped_early, stop_reason = exc.stopped_early, exc.stop_reason
        joined_pair = exc.joined_pair
    except IncompatibleEndsError as exc:
        errors = [str(exc)]
        partials = exc.partial_fragments
        joined_pair = exc.joined_pair

    validity = "unconfirmed"
    valid = plasmids
    if oracle is None:
        if plasmids:
            _logger.warning(
                "No plasmid feature oracle supplied; cannot confirm validity of %s", params.construct_name
            )
    else:
        validity = "confirmed"
        valid = []
        for plasmid in plasmids:
            if oracle.check(plasmid).confirmed:
                valid.append(oracle.annotate(plasmid))
            else:
                errors.append(f"{plasmid.name}: no origin and marker found, not a valid plasmid")

    last = parts[-1].name if parts else "<none>"
    if len(valid) == 1:
        status = "success"
        summary = f"success: {params.construct_name} assembled from {len(parts)} part(s)"
        products = [valid[0].model_copy(update={"name": params.construct_name})]
    elif len(valid) > 1:
        status = "ambiguous"
        summary = f"ambiguous assembly, {len(valid)} possible products"
        products = [
            plasmid.model_copy(update={"name": f"{params.construct_name}_{index}"})
            for index, plasmid in enumerate(valid, start=1)
        ]
    elif partials:
        status = "partial"
        pair = joined_pair or (parts[-2].name if len(parts) > 1 else params.vector.name, last)
        summary = (
            f"partial assembly only: last compatible pair {pair[0]} and {pair[1]}; "
            f"{pair[1]} and {params.vector.name} did not close into a plasmid, check the ends of these parts"
        )
        products = []
    else:
        status = "failed"
        reason = errors[0] if errors else "no compatible ends"
        summary = f"no assembly possible: {reason}"
        products = []
    if stopped_early and status in {"partial", "failed"}:
        summary = f"{summary} (search stopped early: {stop_reason})"

    ASSEMBLY_SIMULATIONS.labels(status).inc()
    return AssemblySimulationResult(
        construct_name=params.construct_name,
        enzyme=enzyme.name,
        status=status,
        summary=summary,
        success_count=len(valid),
        strategy=strategy,
        plasmid_validity=validity,
        products=products,
        partial_fragments=[
            fragment.to_dna_sequence(f"{params.construct_name}_partial{index}")
            for index, fragment in enumerate(partials, start=1)
        ],
        sites_found=_site_summaries(products or [params.vector, *parts], enzyme),
        errors=errors,
        permutations_tried=tried,
        stopped_early=stopped_early,
        stop_reason=stop_reason,
    )


def assembly_insert(
    params: AssemblyParameters, *, config: AssemblySearchConfig | None = None
) -> DNASequence:
    """Return the largest insert the parts assemble into, without the vector."""

    config = config or get_search_config()
    enzyme = lookup_type_iis(params.enzyme_name)
    inserts = assemble_insert(
        params.parts_in_order, [enzyme], allow_blunt=config.allow_blunt_ligation
    )
    biggest = max(inserts, key=len)
    return biggest.to_dna_sequence(f"{params.construct_name}_Insert")


def _site_diagnostics(params: AssemblyParameters) -> list[str]:
    """Describe vector and parts that do not carry exactly two sites."""

    try:
        enzyme = lookup_enzyme(params.enzyme_name)
    except InputError:
        return []
    notes: list[str] = []
    for sequence in [params.vector, *params.parts_in_order]:
        if not sequence.sequence:
            continue
        (record,) = find_restriction_sites(sequence, enzyme)
        if record.number_of_sites != 2:
            positions = record.position_summary() or "none"
            notes.append(
                f"{sequence.name} has {record.number_of_sites} {enzyme.name} site(s) at positions: {positions}"
            )
    return notes


def _simulate_one(
    params: AssemblyParameters,
    config: AssemblySearchConfig | None,
    oracle: PlasmidFeatureOracle | None,
) -> AssemblySimulationResult | str:
    try:
        return assembly_simulate(params, config=config, oracle=oracle)
    except AssemblyError as exc:
        return str(exc)


def multiple_assemblies(
    params_list: Sequence[AssemblyParameters],
    *,
    config: AssemblySearchConfig | None = None,
    oracle: PlasmidFeatureOracle | None = None,
    max_workers: int | None = None,
) -> MultipleAssemblyReport:
    """Simulate several independent designs, optionally across worker processes."""

    # purpose: batch evaluation with per-construct diagnostics for troubleshooting
    config = config or get_search_config()
    count = len(params_list)
    if max_workers and max_workers > 1 and count > 1:
        with ProcessPoolExecutor(max_workers=max_workers) as pool:
            outcomes = list(
                pool.map(_simulate_one, params_list, [config] * count, [oracle] * count)
            )
    else:
        outcomes = [_simulate_one(params, config, oracle) for params in params_list]

    results: list[AssemblySimulationResult] = []
    errors: dict[str, str] = {}
    sequences: list[DNASequence] = []
    for params, outcome in zip(params_list, outcomes):
        if isinstance(outcome, str):
            errors[params.construct_name] = "; ".join([outcome, *_site_diagnostics(params)])
            continue
        results.append(outcome)
        if outcome.status == "success":
            sequences.extend(outcome.products)
            continue
        details = [outcome.summary, *_site_diagnostics(params)]
        errors[params.construct_name] = "; ".join(details)
    success = sum(1 for result in results if result.status == "success")
    return MultipleAssemblyReport(
        summary=f"{success}/{count} assemblies successful",
        success_count=success,
        results=results,
        errors=errors,
        sequences=sequences,
    )
