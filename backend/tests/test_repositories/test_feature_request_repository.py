"""Tests for FeatureRequestRepository."""

import repositories.db_models as db_models
from repositories.feature_request_repository import (
    SORT_VOTES,
    VIEW_VOTED,
    FeatureRequestRepository,
)


class TestVoteCounts:
    def test_counts_are_computed_from_votes(
        self, db_session, test_user, voters, make_request, add_votes
    ):
        request = make_request(test_user)
        add_votes(request, voters[:3])

        row = FeatureRequestRepository(db_session).get_with_vote_count(request.id)

        fetched, author_name, vote_count, has_voted = row
        assert fetched.id == request.id
        assert author_name == "Test User"
        assert vote_count == 3
        assert not has_voted

    def test_missing_request_returns_none(self, db_session):
        assert FeatureRequestRepository(db_session).get_with_vote_count(99999) is None

    def test_votes_sort_breaks_ties_by_newest(
        self, db_session, test_user, make_request
    ):
        first = make_request(test_user, title="First")
        second = make_request(test_user, title="Second")

        rows = FeatureRequestRepository(db_session).list_with_vote_counts(
            sort=SORT_VOTES
        )

        assert [row[0].id for row in rows] == [second.id, first.id]

    def test_voted_view(
        self, db_session, test_user, other_user, make_request, add_votes
    ):
        voted = make_request(other_user, title="Voted")
        make_request(other_user, title="Ignored")
        add_votes(voted, [test_user])

        rows = FeatureRequestRepository(db_session).list_with_vote_counts(
            view=VIEW_VOTED, current_user_id=test_user.id
        )

        assert [row[0].title for row in rows] == ["Voted"]
        assert rows[0][3]

    def test_pagination(self, db_session, test_user, make_request):
        for i in range(5):
            make_request(test_user, title=f"Request {i}")

        rows = FeatureRequestRepository(db_session).list_with_vote_counts(
            skip=1, limit=2, sort="oldest"
        )

        assert [row[0].title for row in rows] == ["Request 1", "Request 2"]


class TestOwnership:
    def test_owned_with_counts(
        self, db_session, test_user, voters, make_request, add_votes
    ):
        quiet = make_request(test_user, title="Quiet")
        loud = make_request(test_user, title="Loud")
        add_votes(loud, voters[:2])

        owned = FeatureRequestRepository(
            db_session
        ).get_owned_with_vote_counts_for_update(test_user.id)

        assert [(r.id, n) for r, n in owned] == [(quiet.id, 0), (loud.id, 2)]

    def test_owned_ids_among(self, db_session, test_user, other_user, make_request):
        mine = make_request(test_user)
        theirs = make_request(other_user)
        repo = FeatureRequestRepository(db_session)

        assert repo.owned_ids_among(test_user.id, [mine.id, theirs.id]) == {mine.id}
        assert repo.owned_ids_among(test_user.id, []) == set()

    def test_count_by_user(self, db_session, test_user, make_request):
        make_request(test_user)
        make_request(test_user)
        assert FeatureRequestRepository(db_session).count_by_user(test_user.id) == 2
        assert (
            db_session.query(db_models.FeatureRequest)
            .filter(db_models.FeatureRequest.user_id == test_user.id)
            .count()
            == 2
        )
