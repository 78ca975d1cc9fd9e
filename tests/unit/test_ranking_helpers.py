"""Pure ranking helpers."""

from questline.ranking.service import MAX_LIMIT, clamp_limit, competition_ranks


class TestCompetitionRanks:
    def test_distinct_scores(self):
        assert competition_ranks([50, 30, 10]) == [1, 2, 3]

    def test_ties_share_rank_and_next_skips(self):
        assert competition_ranks([50, 30, 30, 10]) == [1, 2, 2, 4]

    def test_all_tied(self):
        assert competition_ranks([5, 5, 5]) == [1, 1, 1]

    def test_empty(self):
        assert competition_ranks([]) == []


class TestClampLimit:
    def test_negative_clamps_to_zero(self):
        assert clamp_limit(-5) == 0

    def test_zero_stays_zero(self):
        assert clamp_limit(0) == 0

    def test_positive_unchanged(self):
        assert clamp_limit(25) == 25

    def test_huge_limit_capped(self):
        assert clamp_limit(10**20) == MAX_LIMIT
