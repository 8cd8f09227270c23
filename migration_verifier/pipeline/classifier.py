"""Result classification for a completed probe.

Rules are evaluated top to bottom and every matching rule overwrites the
previous kind (last match wins). Rule order:
  1. 404                 -> Missing
  2. status >= 400       -> Error      (also matches 404, so 404 ends as Error)
  3. redirect captured   -> Redirected (overrides any status)
Anything matching no rule is OK.
"""

from collections.abc import Callable

from migration_verifier.core.schemas import ResultKind

# A rule is (predicate(status_code, redirect_chain_length), kind).
Rule = tuple[Callable[[int | None, int], bool], ResultKind]

CLASSIFICATION_RULES: list[Rule] = [
    (lambda status, _hops: status == 404, ResultKind.MISSING),
    (lambda status, _hops: status is not None and status >= 400, ResultKind.ERROR),
    (lambda _status, hops: hops > 0, ResultKind.REDIRECTED),
]


def classify(
    status_code: int | None,
    redirect_chain_length: int,
    rules: list[Rule] = CLASSIFICATION_RULES,
) -> ResultKind:
    """Return the result kind for a probe outcome."""
    kind = ResultKind.OK
    for predicate, rule_kind in rules:
        if predicate(status_code, redirect_chain_length):
            kind = rule_kind
    return kind
