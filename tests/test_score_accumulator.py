"""
Tests for per-legislator tallies (vote_alignment/services/score_accumulator.py).
"""

import pytest

from vote_alignment.lib.classifier import CENTRIST, GOVERNMENT, NO_DATA, OPPOSITION
from vote_alignment.services.score_accumulator import (
    LegislatorTally,
    ScoreAccumulator,
    roster_legislator_id,
)


class TestRosterLegislatorId:
    def test_int_and_string_ids(self, make_roster_vote):
        assert roster_legislator_id(make_roster_vote(204554, "Sim")) == 204554
        assert roster_legislator_id({"deputado_": {"id": "204554"}}) == 204554

    @pytest.mark.parametrize("record", [
        {},
        {"deputado_": None},
        {"deputado_": {}},
        {"deputado_": {"id": ""}},
        {"deputado_": {"id": "abc"}},
    ])
    def test_unusable_ids(self, record):
        assert roster_legislator_id(record) is None


class TestAddRoster:
    def test_counts_aligned_and_relevant(self, make_roster_vote):
        acc = ScoreAccumulator()

        acc.add_roster([make_roster_vote(1, "Sim"), make_roster_vote(2, "Não")], "Sim")

        assert (acc.tallies[1].aligned, acc.tallies[1].relevant) == (1, 1)
        assert (acc.tallies[2].aligned, acc.tallies[2].relevant) == (0, 1)

    def test_orientation_is_normalized(self, make_roster_vote):
        acc = ScoreAccumulator()

        acc.add_roster([make_roster_vote(1, "NAO")], " não ")

        assert acc.tallies[1].aligned == 1

    @pytest.mark.parametrize("vote", ["Abstenção", "Obstrução", "Ausente", "", None])
    def test_non_stance_votes_not_relevant(self, make_roster_vote, vote):
        acc = ScoreAccumulator()

        acc.add_roster([make_roster_vote(1, vote)], "Sim")

        assert acc.tallies[1].relevant == 0
        assert 1 in acc.touched

    def test_duplicate_legislator_counted_once(self, make_roster_vote):
        acc = ScoreAccumulator()

        counted = acc.add_roster([make_roster_vote(1, "Sim"), make_roster_vote(1, "Sim")], "Sim")

        assert counted == 1
        assert acc.tallies[1].relevant == 1

    def test_records_without_id_skipped(self, make_roster_vote):
        acc = ScoreAccumulator()

        acc.add_roster([{"tipoVoto": "Sim"}, make_roster_vote(1, "Sim")], "Sim")

        assert list(acc.tallies) == [1]

    def test_identity_from_first_observation(self, make_roster_vote):
        acc = ScoreAccumulator()

        acc.add_roster([make_roster_vote(1, "Sim", name="First", party="PT")], "Sim")
        acc.add_roster([make_roster_vote(1, "Sim", name="Second", party="PL")], "Sim")

        assert acc.tallies[1].name == "First"
        assert acc.tallies[1].party == "PT"

    def test_missing_name_defaults(self):
        acc = ScoreAccumulator()

        acc.add_roster([{"deputado_": {"id": 5}, "tipoVoto": "Sim"}], "Sim")

        assert acc.tallies[5].name == "N/A"


class TestSeed:
    def test_seeded_counts_are_extended(self, make_roster_vote):
        acc = ScoreAccumulator()
        acc.seed([{
            "legislator_id": 1, "year": 2024, "name": "Persisted", "party": "PT",
            "relevant_count": 4, "aligned_count": 3, "score": 75.0,
        }])

        acc.add_roster([make_roster_vote(1, "Não", name="Fresh")], "Sim")

        tally = acc.tallies[1]
        assert (tally.aligned, tally.relevant) == (3, 5)
        assert tally.name == "Persisted"

    def test_seeded_but_untouched_rows_not_written(self, make_roster_vote):
        acc = ScoreAccumulator()
        acc.seed([{"legislator_id": 1, "relevant_count": 4, "aligned_count": 3}])
        acc.add_roster([make_roster_vote(2, "Sim")], "Sim")

        assert [r["legislator_id"] for r in acc.to_rows(2024, touched_only=True)] == [2]
        assert [r["legislator_id"] for r in acc.to_rows(2024)] == [1, 2]

    def test_unusable_rows_skipped(self):
        acc = ScoreAccumulator()

        seeded = acc.seed([{"name": "no id"}, {"legislator_id": "x"}, {"legislator_id": 3}])

        assert seeded == 1
        assert len(acc) == 1


class TestToRows:
    def test_row_shape(self, make_roster_vote):
        acc = ScoreAccumulator()
        acc.add_roster([make_roster_vote(9, "Sim", name="Ana", party="PSB", state="PE")], "Sim")

        (row,) = acc.to_rows(2024)

        assert row == {
            "legislator_id": 9,
            "year": 2024,
            "name": "Ana",
            "party": "PSB",
            "state": "PE",
            "photo_url": "https://www.camara.leg.br/fotos/9.jpg",
            "relevant_count": 1,
            "aligned_count": 1,
            "score": 100.0,
            "classification": GOVERNMENT,
        }

    def test_classifications(self):
        rows = {
            t.legislator_id: t.to_row(2024)
            for t in [
                LegislatorTally(1, aligned=8, relevant=10),
                LegislatorTally(2, aligned=5, relevant=10),
                LegislatorTally(3, aligned=1, relevant=10),
                LegislatorTally(4),
            ]
        }

        assert rows[1]["classification"] == GOVERNMENT
        assert rows[2]["classification"] == CENTRIST
        assert rows[3]["classification"] == OPPOSITION
        assert (rows[4]["score"], rows[4]["classification"]) == (0.0, NO_DATA)

    def test_aligned_never_exceeds_relevant(self, sample_rosters):
        acc = ScoreAccumulator()
        for roster in sample_rosters.values():
            acc.add_roster(roster["dados"], "Sim")

        for row in acc.to_rows(2024):
            assert 0 <= row["aligned_count"] <= row["relevant_count"]
