"""
Property tests for the project lifecycle.

validate_transition must agree with the declared edge set for every pair of
statuses, and a random walk of requested statuses never leaves the set of
statuses reachable from PENDING.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from restoration_kernel.domain.workflow import (
    PROJECT_LIFECYCLE,
    TERMINAL_STATUSES,
    ProjectStatus,
    validate_transition,
)
from restoration_kernel.exceptions import InvalidTransitionError

statuses = st.sampled_from(list(ProjectStatus))

EDGES = {(t.from_state, t.to_state) for t in PROJECT_LIFECYCLE.transitions}


def _reachable_from_pending() -> set[ProjectStatus]:
    seen = {ProjectStatus.PENDING}
    frontier = [ProjectStatus.PENDING]
    while frontier:
        current = frontier.pop()
        for source, target in EDGES:
            if source == current and target not in seen:
                seen.add(target)
                frontier.append(target)
    return seen


@given(current=statuses, target=statuses)
def test_validate_matches_edge_set(current, target):
    if current == target:
        assert validate_transition(current, target) is False
    elif (current, target) in EDGES:
        assert validate_transition(current, target) is True
    else:
        try:
            validate_transition(current, target)
        except InvalidTransitionError as exc:
            assert (exc.from_status, exc.to_status) == (current.value, target.value)
        else:
            raise AssertionError(f"{current} -> {target} should be rejected")


@given(target=statuses, terminal=st.sampled_from(sorted(TERMINAL_STATUSES)))
def test_terminal_statuses_have_no_exit(terminal, target):
    if target == terminal:
        assert validate_transition(terminal, target) is False
    else:
        try:
            validate_transition(terminal, target)
        except InvalidTransitionError:
            pass
        else:
            raise AssertionError(f"{terminal} -> {target} should be rejected")


@settings(max_examples=200)
@given(walk=st.lists(statuses, max_size=25))
def test_random_walk_stays_inside_lifecycle(walk):
    reachable = _reachable_from_pending()
    current = ProjectStatus.PENDING
    for target in walk:
        try:
            changed = validate_transition(current, target)
        except InvalidTransitionError:
            continue
        if changed:
            assert (current, target) in EDGES
            current = target
        assert current in reachable


def test_every_status_is_reachable():
    assert _reachable_from_pending() == set(ProjectStatus)
