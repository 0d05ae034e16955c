"""Tests for FeatureRequestService."""

import pytest

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import (
    AuthenticationException,
    FeatureRequestNotFoundException,
    HasVotesException,
    InsufficientPermissionsException,
    InvalidStatusException,
    NotOwnerException,
    ValidationException,
)
from repositories.vote_repository import VoteRepository
from services.feature_request_service import (
    FeatureRequestService,
    parse_status_filter,
)

Status = db_models.FeatureRequestStatus


def _update(title="New title", description="New description"):
    return schemas.FeatureRequestUpdate(title=title, description=description)


class TestCreateFeatureRequest:
    def test_create_starts_pending_with_no_votes(self, db_session, test_user):
        result = FeatureRequestService.create_feature_request(
            db_session,
            test_user.id,
            schemas.FeatureRequestCreate(
                title="  Export to CSV ", description="Download the board as CSV."
            ),
        )

        assert result.title == "Export to CSV"
        assert result.status == Status.PENDING
        assert result.vote_count == 0
        assert result.author_name == "Test User"

        activity = db_session.query(db_models.Activity).one()
        assert activity.type == db_models.ActivityType.CREATED
        assert activity.feature_request_id == result.id

    def test_blank_title_rejected(self, db_session, test_user):
        with pytest.raises(ValidationException):
            FeatureRequestService.create_feature_request(
                db_session,
                test_user.id,
                schemas.FeatureRequestCreate(title="   ", description="Something"),
            )
        assert db_session.query(db_models.FeatureRequest).count() == 0


class TestEditGuard:
    """Owner edits and deletes are refused once a request has votes."""

    def test_owner_can_edit_unvoted_request(self, db_session, test_user, test_request):
        result = FeatureRequestService.edit_feature_request(
            db_session, test_request.id, test_user.id, _update()
        )

        assert result.title == "New title"
        assert result.description == "New description"
        types = [a.type for a in db_session.query(db_models.Activity).all()]
        assert types == [db_models.ActivityType.EDITED]

    def test_edit_refused_with_one_vote(
        self, db_session, test_user, other_user, test_request, add_votes
    ):
        add_votes(test_request, [other_user])

        with pytest.raises(HasVotesException) as exc_info:
            FeatureRequestService.edit_feature_request(
                db_session, test_request.id, test_user.id, _update()
            )
        assert exc_info.value.action == "edit"

        db_session.refresh(test_request)
        assert test_request.title == "Dark mode"

    def test_edit_by_non_owner(self, db_session, other_user, test_request):
        with pytest.raises(NotOwnerException):
            FeatureRequestService.edit_feature_request(
                db_session, test_request.id, other_user.id, _update()
            )

    def test_not_owner_checked_before_votes(
        self, db_session, other_user, voters, test_request, add_votes
    ):
        add_votes(test_request, voters[:1])
        with pytest.raises(NotOwnerException):
            FeatureRequestService.authorize_delete(
                db_session, test_request.id, other_user.id
            )

    def test_missing_request(self, db_session, test_user):
        with pytest.raises(FeatureRequestNotFoundException):
            FeatureRequestService.authorize_edit(db_session, 99999, test_user.id)

    def test_delete_refused_with_votes(
        self, db_session, test_user, other_user, test_request, add_votes
    ):
        add_votes(test_request, [other_user])
        with pytest.raises(HasVotesException) as exc_info:
            FeatureRequestService.delete_feature_request(
                db_session, test_request.id, test_user.id
            )
        assert exc_info.value.action == "delete"
        assert db_session.query(db_models.FeatureRequest).count() == 1

    def test_delete_keeps_title_in_activity(
        self, db_session, test_user, test_request
    ):
        request_id = test_request.id
        FeatureRequestService.edit_feature_request(
            db_session, request_id, test_user.id, _update(title="Renamed")
        )

        FeatureRequestService.delete_feature_request(
            db_session, request_id, test_user.id
        )

        assert db_session.query(db_models.FeatureRequest).count() == 0
        activities = db_session.query(db_models.Activity).all()
        # The edit activity pointed at the request and goes with it
        assert len(activities) == 1
        assert activities[0].type == db_models.ActivityType.DELETED
        assert activities[0].feature_request_id is None
        assert activities[0].deleted_request_title == "Renamed"

    @pytest.fixture
    def vote_after_guard(self, monkeypatch, other_user, add_votes):
        """Cast a vote between the ownership guard and the delete."""
        original = FeatureRequestService.authorize_delete

        def _authorize_then_vote(db, request_id, user_id):
            request = original(db, request_id, user_id)
            add_votes(request, [other_user])
            return request

        monkeypatch.setattr(
            FeatureRequestService,
            "authorize_delete",
            staticmethod(_authorize_then_vote),
        )

    def test_vote_cast_after_guard_blocks_delete(
        self, db_session, test_user, test_request, vote_after_guard
    ):
        request_id = test_request.id
        with pytest.raises(HasVotesException) as exc_info:
            FeatureRequestService.delete_feature_request(
                db_session, request_id, test_user.id
            )

        assert exc_info.value.action == "delete"
        assert db_session.get(db_models.FeatureRequest, request_id) is not None
        assert db_session.query(db_models.Vote).count() == 1
        assert (
            db_session.query(db_models.Activity)
            .filter(db_models.Activity.type == db_models.ActivityType.DELETED)
            .count()
            == 0
        )

    def test_constraint_failure_reported_as_has_votes(
        self, db_session, monkeypatch, test_user, test_request, vote_after_guard
    ):
        # Recount misses the vote, so the write itself hits the constraint
        monkeypatch.setattr(
            VoteRepository, "count_for_request", lambda self, request_id: 0
        )
        request_id = test_request.id

        with pytest.raises(HasVotesException):
            FeatureRequestService.delete_feature_request(
                db_session, request_id, test_user.id
            )

        assert db_session.get(db_models.FeatureRequest, request_id) is not None
        assert db_session.query(db_models.Vote).count() == 1


class TestUpdateStatus:
    def test_admin_changes_status_of_voted_request(
        self, db_session, admin_user, other_user, test_request, add_votes
    ):
        add_votes(test_request, [other_user])

        result = FeatureRequestService.update_status(
            db_session, admin_user, test_request.id, "completed"
        )

        assert result.status == Status.COMPLETED
        assert result.vote_count == 1

    def test_non_admin_refused(self, db_session, test_user, test_request):
        with pytest.raises(InsufficientPermissionsException):
            FeatureRequestService.update_status(
                db_session, test_user, test_request.id, "COMPLETED"
            )

    def test_invalid_status(self, db_session, admin_user, test_request):
        with pytest.raises(InvalidStatusException):
            FeatureRequestService.update_status(
                db_session, admin_user, test_request.id, "SHIPPED"
            )

    def test_missing_request(self, db_session, admin_user):
        with pytest.raises(FeatureRequestNotFoundException):
            FeatureRequestService.update_status(
                db_session, admin_user, 99999, "ACCEPTED"
            )


class TestListFeatureRequests:
    @pytest.fixture
    def board(self, make_request, add_votes, test_user, other_user, voters):
        """Three requests: popular (3 votes), quiet (0), done (1)."""
        popular = make_request(test_user, title="Popular")
        quiet = make_request(other_user, title="Quiet")
        done = make_request(other_user, title="Done", status=Status.COMPLETED)
        add_votes(popular, voters[:3])
        add_votes(done, [test_user])
        return {"popular": popular, "quiet": quiet, "done": done}

    def test_sorted_by_votes(self, db_session, board):
        titles = [
            r.title for r in FeatureRequestService.list_feature_requests(db_session)
        ]
        assert titles == ["Popular", "Done", "Quiet"]

    def test_sorted_newest_and_oldest(self, db_session, board):
        newest = FeatureRequestService.list_feature_requests(db_session, sort="newest")
        oldest = FeatureRequestService.list_feature_requests(db_session, sort="oldest")
        assert [r.title for r in newest] == ["Done", "Quiet", "Popular"]
        assert [r.title for r in oldest] == ["Popular", "Quiet", "Done"]

    def test_open_filter_hides_closed(self, db_session, board):
        results = FeatureRequestService.list_feature_requests(
            db_session, status="open"
        )
        assert {r.title for r in results} == {"Popular", "Quiet"}

    def test_exact_status_filter(self, db_session, board):
        results = FeatureRequestService.list_feature_requests(
            db_session, status="COMPLETED"
        )
        assert [r.title for r in results] == ["Done"]

    def test_mine_and_voted_views(self, db_session, board, test_user):
        mine = FeatureRequestService.list_feature_requests(
            db_session, current_user_id=test_user.id, view="MINE"
        )
        voted = FeatureRequestService.list_feature_requests(
            db_session, current_user_id=test_user.id, view="VOTED"
        )
        assert [r.title for r in mine] == ["Popular"]
        assert [r.title for r in voted] == ["Done"]
        assert voted[0].has_voted is True

    def test_views_need_a_user(self, db_session, board):
        with pytest.raises(AuthenticationException):
            FeatureRequestService.list_feature_requests(db_session, view="MINE")

    def test_has_voted_false_for_anonymous(self, db_session, board):
        results = FeatureRequestService.list_feature_requests(db_session)
        assert not any(r.has_voted for r in results)

    def test_invalid_sort(self, db_session, board):
        with pytest.raises(ValidationException):
            FeatureRequestService.list_feature_requests(db_session, sort="random")


class TestParseStatusFilter:
    def test_all_and_none_keep_everything(self):
        assert parse_status_filter(None) is None
        assert parse_status_filter("all") is None

    def test_open_keeps_pending_and_accepted(self):
        assert set(parse_status_filter("OPEN")) == {Status.PENDING, Status.ACCEPTED}

    def test_unknown_status(self):
        with pytest.raises(InvalidStatusException):
            parse_status_filter("archived")
