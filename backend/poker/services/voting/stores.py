"""Thin persistence collaborators used by the round state machine."""

from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from poker import db
from poker.models import Story, Vote, User, ROLE_DEVELOPER
from .errors import AlreadyVoted, ConflictError, NotFound, StorageError


def commit(action: str) -> None:
    """Commit the current unit of work, translating SQLAlchemy failures."""
    try:
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        current_app.logger.info(f"[conflict] action={action} detail={exc}")
        raise ConflictError('The story changed while the request was processed; reload and try again')
    except IntegrityError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[storage-error] action={action} detail={exc}")
        raise StorageError(f'Could not {action}')


class StoryStore:
    def get(self, story_id) -> Story:
        try:
            story = db.session.get(Story, int(story_id))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f'Could not load story: {exc}')
        if story is None:
            raise NotFound('Story not found')
        return story

    def set_status(self, story: Story, status: str, final_estimate: Optional[int] = None, **fields) -> Story:
        """Persist a status change guarded by the story's version.

        The UPDATE only matches if nobody wrote the row since ``story`` was
        loaded; otherwise ``ConflictError`` is raised.
        """
        story.status = status
        if final_estimate is not None:
            story.final_estimate = final_estimate
        for key, value in fields.items():
            setattr(story, key, value)
        story.version = (story.version or 1) + 1
        db.session.add(story)
        commit('update story status')
        return story

    def delete(self, story: Story) -> None:
        # Votes go with the story through the relationship cascade
        db.session.delete(story)
        commit('delete story')


class VoteStore:
    def find_by_story_and_user(self, story_id, user_id) -> Optional[Vote]:
        return Vote.query.filter_by(story_id=story_id, user_id=user_id).first()

    def insert(self, vote: Vote, story: Story) -> Vote:
        """Insert ``vote`` and bump ``story``'s version in one transaction.

        A reveal that read the votes before this insert then fails its own
        version check instead of completing without this vote.
        """
        story.version = (story.version or 1) + 1
        db.session.add(story)
        db.session.add(vote)
        try:
            commit('store vote')
        except IntegrityError:
            raise AlreadyVoted('You have already voted on this story')
        return vote

    def list_by_story(self, story_id) -> List[Vote]:
        try:
            return Vote.query.filter_by(story_id=story_id).order_by(Vote.created_at, Vote.id).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f'Could not load votes: {exc}')


class ParticipantDirectory:
    def resolve(self, user_ids: Iterable[int]) -> List[User]:
        """Developers among ``user_ids``; facilitators are not voters."""
        ids = [int(u) for u in user_ids]
        if not ids:
            return []
        return (
            User.query.filter(User.id.in_(ids), User.role == ROLE_DEVELOPER)
            .order_by(User.id)
            .all()
        )

    def for_story(self, story: Story) -> List[User]:
        return self.resolve(story.session.participant_ids if story.session else [])
