"""Tests for src.core.roster — group membership filter."""

from src.core.roster import members_of
from src.data.models import Person


def _person(pid, groups=()):
    return Person(id=pid, name=pid.title(), group_memberships=frozenset(groups))


class TestMembersOf:
    def test_keeps_members_in_order(self):
        people = [_person("c", ["g1"]), _person("a", ["g1", "g2"]), _person("b", ["g2"])]
        result = members_of(people, "g1")
        assert [p.id for p in result] == ["c", "a"]

    def test_excludes_people_without_memberships(self):
        people = [_person("a"), _person("b", ["g1"])]
        assert [p.id for p in members_of(people, "g1")] == ["b"]

    def test_empty_result_is_valid(self):
        assert members_of([_person("a", ["g1"])], "g9") == []

    def test_empty_roster(self):
        assert members_of([], "g1") == []

    def test_result_never_larger_and_all_members(self):
        people = [_person(str(i), ["g1"] if i % 2 else ["g2"]) for i in range(10)]
        for gid in ("g1", "g2", "g3"):
            result = members_of(people, gid)
            assert len(result) <= len(people)
            assert all(gid in p.group_memberships for p in result)

    def test_accepts_generator(self):
        people = (p for p in [_person("a", ["g1"])])
        assert [p.id for p in members_of(people, "g1")] == ["a"]
