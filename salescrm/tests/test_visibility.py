"""
Tests for role-scoped visibility and supervisor reassignment validation.

Test Classes:
- TestResolveVisibility: scope per role, including fail-closed cases
- TestVisibleRecords: record filtering and monotonicity up the hierarchy
- TestSupervisorAssignment: forest preservation on reassignment
"""

from typing import List

import pytest

from salescrm.models.enums import Role
from salescrm.models.schemas import Caller, CustomerRecord, User
from salescrm.services.visibility import (
    HierarchyCycleError,
    UnknownUserError,
    VisibilityScope,
    resolve_visibility,
    validate_supervisor_assignment,
    visible_records,
)
from salescrm.tests.conftest import make_record


def _ids(records: List[CustomerRecord]) -> set:
    return {r.id for r in records}


class TestResolveVisibility:

    def test_supervisor_sees_everyone(self, users: List[User]) -> None:
        scope = resolve_visibility(Caller(id='boss', role=Role.SUPERVISOR), users)
        assert scope == VisibilityScope.everyone()

    def test_agent_sees_only_self(self, users: List[User]) -> None:
        scope = resolve_visibility(Caller(id='agent1', role=Role.AGENT), users)
        assert scope.owner_ids == frozenset({'agent1'})

    def test_manager_sees_self_and_direct_reports(self, users: List[User]) -> None:
        scope = resolve_visibility(Caller(id='mgr1', role=Role.MANAGER), users)
        assert scope.owner_ids == frozenset({'mgr1', 'agent1', 'agent3'})

    def test_director_sees_two_levels(self, users: List[User]) -> None:
        scope = resolve_visibility(Caller(id='dir1', role=Role.DIRECTOR), users)
        assert scope.owner_ids == frozenset(
            {'dir1', 'mgr1', 'mgr2', 'agent1', 'agent2', 'agent3'}
        )

    def test_director_does_not_follow_a_third_level(self, users: List[User]) -> None:
        users = users + [User(id='intern', role='业务', supervisorId='agent1')]
        scope = resolve_visibility(Caller(id='dir1', role=Role.DIRECTOR), users)
        assert 'intern' not in scope.owner_ids

    def test_support_sees_nobody(self, users: List[User]) -> None:
        assert resolve_visibility(Caller(id='ops', role=Role.SUPPORT), users).is_empty

    def test_unrecognized_role_fails_closed(self, users: List[User]) -> None:
        assert Role.parse('unrecognized-role') is None
        scope = resolve_visibility(Caller(id='boss', role=None), users)
        assert scope.is_empty

    def test_manager_with_no_reports_sees_self(self, users: List[User]) -> None:
        scope = resolve_visibility(Caller(id='lonely', role=Role.MANAGER), users)
        assert scope.owner_ids == frozenset({'lonely'})


class TestVisibleRecords:

    def test_manager_and_agent_scenario(
        self,
        users: List[User],
        scenario_records: List[CustomerRecord]
    ) -> None:
        manager = visible_records(Caller(id='mgr1', role=Role.MANAGER), users, scenario_records)
        agent = visible_records(Caller(id='agent1', role=Role.AGENT), users, scenario_records)
        assert _ids(manager) == {'C1', 'C2'}
        assert _ids(agent) == {'C1', 'C2'}

    def test_unknown_role_sees_no_records(
        self,
        users: List[User],
        scenario_records: List[CustomerRecord]
    ) -> None:
        assert visible_records(Caller(id='agent1', role=None), users, scenario_records) == []

    def test_visibility_grows_up_the_hierarchy(
        self,
        users: List[User],
        mixed_records: List[CustomerRecord]
    ) -> None:
        agent = _ids(visible_records(Caller(id='agent1', role=Role.AGENT), users, mixed_records))
        manager = _ids(visible_records(Caller(id='mgr1', role=Role.MANAGER), users, mixed_records))
        director = _ids(visible_records(Caller(id='dir1', role=Role.DIRECTOR), users, mixed_records))
        supervisor = _ids(visible_records(Caller(id='boss', role=Role.SUPERVISOR), users, mixed_records))
        assert agent <= manager <= director <= supervisor
        assert supervisor == _ids(mixed_records)

    def test_ownerless_records_only_visible_to_supervisor(self, users: List[User]) -> None:
        records = [make_record('orphan', None, 'ads')]
        assert visible_records(Caller(id='dir1', role=Role.DIRECTOR), users, records) == []
        assert _ids(visible_records(Caller(id='boss', role=Role.SUPERVISOR), users, records)) == {'orphan'}

    def test_preserves_input_order(self, users: List[User]) -> None:
        records = [make_record(f'r{i}', 'agent3') for i in range(5)]
        visible = visible_records(Caller(id='mgr1', role=Role.MANAGER), users, records)
        assert [r.id for r in visible] == ['r0', 'r1', 'r2', 'r3', 'r4']


class TestSupervisorAssignment:

    def test_valid_reassignment_passes(self, users: List[User]) -> None:
        validate_supervisor_assignment('agent2', 'mgr1', users)

    def test_clearing_supervisor_passes(self, users: List[User]) -> None:
        validate_supervisor_assignment('mgr1', None, users)

    def test_self_supervision_is_a_cycle(self, users: List[User]) -> None:
        with pytest.raises(HierarchyCycleError):
            validate_supervisor_assignment('mgr1', 'mgr1', users)

    def test_reporting_to_own_descendant_is_a_cycle(self, users: List[User]) -> None:
        with pytest.raises(HierarchyCycleError):
            validate_supervisor_assignment('dir1', 'agent1', users)

    def test_unknown_user_is_rejected(self, users: List[User]) -> None:
        with pytest.raises(UnknownUserError):
            validate_supervisor_assignment('nobody', 'mgr1', users)

    def test_unknown_supervisor_is_rejected(self, users: List[User]) -> None:
        with pytest.raises(UnknownUserError):
            validate_supervisor_assignment('agent1', 'nobody', users)
