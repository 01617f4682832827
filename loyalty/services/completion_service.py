"""
Completion awarder for content, daily check-ins and missions.

Every completion is idempotent per natural key: (member, content),
(member, mission) and (member, calendar day). Finishing something twice
returns the original record with `already_completed=True` and writes no
new ledger rows. The lookup comes before the published, open-window and
eligibility gates, so a later change to the item or the member never turns
a finished completion into an error. A manual mission still pending review
is reported with `already_completed=False`.

The completion record and its award are written in one unit of work. Two
guards keep a racing duplicate from paying twice:
- inserts rely on the unique constraint; the loser's IntegrityError rolls
  its whole unit back
- a partial record is flipped to completed with a guarded UPDATE
  (`WHERE is_completed = false`)
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional
from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from ..extensions import db
from ..models import (
    Profile,
    Content,
    ContentType,
    ContentProgress,
    Mission,
    MissionType,
    MissionCompletion,
    DailyCheckin,
    CheckinReward,
    ReviewStatus,
    TransactionSource,
)
from ..utils.exceptions import (
    MemberNotFoundError,
    ItemNotFoundError,
    NotActiveError,
    IneligibleError,
    ValidationError,
)
from .eligibility import MemberSnapshot, is_eligible
from .ledger_service import LedgerService
from .reward_overrides import resolve_award

# Source tag per content type
CONTENT_SOURCES = {
    ContentType.ARTICLE.value: TransactionSource.CONTENT,
    ContentType.VIDEO.value: TransactionSource.CONTENT,
    ContentType.QUIZ.value: TransactionSource.QUIZ,
    ContentType.SURVEY.value: TransactionSource.SURVEY,
}


def _result(record, already_completed: bool, points: int = 0, coins: int = 0, **extra) -> Dict[str, Any]:
    return {
        'success': True,
        'already_completed': already_completed,
        'points_earned': points,
        'coins_earned': coins,
        'record': record,
        **extra,
    }


def _mission_result(completion) -> Dict[str, Any]:
    """Result for a submission that was already on file; only approval counts as completed."""
    return _result(completion, completion.status == ReviewStatus.APPROVED.value, status=completion.status)


def _is_blank(answer) -> bool:
    if answer is None:
        return True
    if isinstance(answer, str):
        return not answer.strip()
    if isinstance(answer, (list, dict)):
        return len(answer) == 0
    return False


def score_quiz(questions, answers: Dict) -> Dict[str, int]:
    """
    Score submitted answers.

    `answers` maps question id (int or str) to the chosen option index.
    Returns {'score': correct count, 'points': sum of correct questions' points}.
    """
    if not isinstance(answers, dict):
        raise ValidationError('answers must be an object of question id -> option index', field='answers')

    score = 0
    points = 0
    for question in questions:
        answer = answers.get(str(question.id), answers.get(question.id))
        if answer is None:
            continue
        try:
            chosen = int(answer)
        except (TypeError, ValueError):
            raise ValidationError(f'Answer for question {question.id} must be an option index',
                                  field='answers')
        if chosen == question.correct_answer:
            score += 1
            points += question.points or 0
    return {'score': score, 'points': points}


def missing_survey_answers(questions, responses: Dict) -> list:
    """Ids of required questions left unanswered."""
    if not isinstance(responses, dict):
        raise ValidationError('responses must be an object of question id -> answer', field='responses')
    return [
        q.id for q in questions
        if q.is_required and _is_blank(responses.get(str(q.id), responses.get(q.id)))
    ]


def checkin_day_number(streak: int, cycle_days: int = 7) -> int:
    """Position of a streak inside the reward cycle, 1-based."""
    return ((streak - 1) % cycle_days) + 1


class CompletionService:
    """
    Usage:
        service = CompletionService()
        service.complete_content(member_id, content_id, {'answers': {'12': 1}})
        service.daily_checkin(member_id)
        service.complete_mission(member_id, mission_id, {'qr_code': 'FARM-2024'})
    """

    def __init__(self, ledger: LedgerService = None):
        self.ledger = ledger or LedgerService()

    def _load_member(self, member_id: int) -> Profile:
        profile = db.session.get(Profile, member_id)
        if profile is None:
            raise MemberNotFoundError(member_id)
        return profile

    def _commit(self, what: str):
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Completion commit failed ({what}): {e}")
            raise

    # ==================== Content ====================

    def complete_content(self, member_id: int, content_id: int, payload: Optional[Dict] = None) -> Dict[str, Any]:
        """
        Record progress on, or complete, a content item.

        Payload by content type:
            article/video: {'progress_percent': 0-100} (default 100, completes at 100)
            quiz: {'answers': {question_id: option_index}}
            survey: {'responses': {question_id: answer}}
        """
        payload = payload or {}
        content = db.session.get(Content, content_id)
        if content is None:
            raise ItemNotFoundError('Content', content_id)
        profile = self._load_member(member_id)

        # Checked before the gates: later changes to the item or member don't undo a completion
        progress = ContentProgress.query.filter_by(profile_id=member_id, content_id=content_id).first()
        if progress is not None and progress.is_completed:
            return _result(progress, True)

        if not content.is_published:
            raise NotActiveError('Content', content_id, 'not published')
        if not is_eligible(MemberSnapshot.from_profile(profile), content):
            raise IneligibleError('Content', content_id)

        values = {'progress_percent': 100}
        if content.content_type == ContentType.QUIZ.value:
            scored = score_quiz(content.quiz_questions.all(), payload.get('answers'))
            points = scored['points']
            values['quiz_score'] = scored['score']
        elif content.content_type == ContentType.SURVEY.value:
            responses = payload.get('responses')
            missing = missing_survey_answers(content.survey_questions.all(), responses)
            if missing:
                raise ValidationError(
                    f'Missing answers for required questions: {missing}', field='responses'
                )
            points = content.points_reward or 0
            values['survey_responses'] = responses
        else:
            try:
                percent = int(payload.get('progress_percent', 100))
            except (TypeError, ValueError):
                raise ValidationError('progress_percent must be an integer', field='progress_percent')
            percent = max(0, min(100, percent))
            if percent < 100:
                return self._save_partial_progress(progress, member_id, content_id, percent)
            points = content.points_reward or 0

        now = datetime.utcnow()
        values.update(is_completed=True, points_earned=points, completed_at=now)

        try:
            if progress is None:
                progress = ContentProgress(profile_id=member_id, content_id=content_id, **values)
                db.session.add(progress)
                db.session.flush()
            else:
                claimed = db.session.execute(
                    update(ContentProgress)
                    .where(ContentProgress.id == progress.id, ContentProgress.is_completed == False)  # noqa: E712
                    .values(updated_at=now, **values)
                    .execution_options(synchronize_session=False)
                )
                if claimed.rowcount != 1:
                    db.session.rollback()
                    return self._existing_content_result(member_id, content_id)
                db.session.refresh(progress)

            if points > 0:
                self.ledger.add_points(
                    member_id,
                    points,
                    CONTENT_SOURCES.get(content.content_type, TransactionSource.CONTENT),
                    description=f'{content.content_type.title()}: {content.title}',
                    source_id=content_id,
                    commit=False,
                )
            db.session.commit()

        except IntegrityError:
            db.session.rollback()
            return self._existing_content_result(member_id, content_id)
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f"Content completed: profile {member_id} content {content_id} "
            f"({content.content_type}) +{points} pts"
        )
        return _result(progress, False, points=points)

    def _save_partial_progress(self, progress, member_id, content_id, percent):
        if progress is None:
            progress = ContentProgress(profile_id=member_id, content_id=content_id,
                                       progress_percent=percent)
            db.session.add(progress)
        else:
            progress.progress_percent = max(progress.progress_percent or 0, percent)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return self._existing_content_result(member_id, content_id)
        return _result(progress, False)

    def _existing_content_result(self, member_id, content_id):
        progress = ContentProgress.query.filter_by(profile_id=member_id, content_id=content_id).first()
        return _result(progress, bool(progress and progress.is_completed))

    # ==================== Daily Check-in ====================

    def daily_checkin(self, member_id: int, today: date = None) -> Dict[str, Any]:
        """
        Check in for `today` (UTC date by default).

        The streak continues when yesterday has a check-in, otherwise it
        restarts at 1. Coins come from checkin_rewards for the day of the
        7-day cycle, with config fallbacks for unset days.
        """
        today = today or datetime.utcnow().date()
        self._load_member(member_id)

        existing = DailyCheckin.query.filter_by(profile_id=member_id, checkin_date=today).first()
        if existing is not None:
            return _result(existing, True)

        yesterday = DailyCheckin.query.filter_by(
            profile_id=member_id, checkin_date=today - timedelta(days=1)
        ).first()
        streak = yesterday.streak_count + 1 if yesterday else 1
        day_number = checkin_day_number(streak, current_app.config['CHECKIN_CYCLE_DAYS'])
        coins = self.checkin_coins_for_day(day_number)

        try:
            checkin = DailyCheckin(
                profile_id=member_id,
                checkin_date=today,
                streak_count=streak,
                day_number=day_number,
                coins_earned=coins,
            )
            db.session.add(checkin)
            db.session.flush()

            if coins > 0:
                self.ledger.add_coins(
                    member_id,
                    coins,
                    TransactionSource.DAILY_CHECKIN,
                    description=f'Day {day_number} check-in reward',
                    source_id=checkin.id,
                    commit=False,
                )
            db.session.commit()

        except IntegrityError:
            db.session.rollback()
            existing = DailyCheckin.query.filter_by(profile_id=member_id, checkin_date=today).first()
            return _result(existing, True)
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f"Check-in: profile {member_id} streak {streak} (day {day_number}) +{coins} coins"
        )
        return _result(checkin, False, coins=coins, streak=streak, day_number=day_number)

    @staticmethod
    def checkin_coins_for_day(day_number: int) -> int:
        config = current_app.config
        reward = CheckinReward.query.filter_by(day_number=day_number).first()
        if reward is not None:
            return reward.coins_reward
        if day_number == config['CHECKIN_CYCLE_DAYS']:
            return config['CHECKIN_BONUS_COINS']
        return config['CHECKIN_DEFAULT_COINS']

    def checkin_status(self, member_id: int, today: date = None) -> Dict[str, Any]:
        """Today's state plus the reward schedule, for the dashboard card."""
        today = today or datetime.utcnow().date()
        self._load_member(member_id)
        cycle = current_app.config['CHECKIN_CYCLE_DAYS']

        todays = DailyCheckin.query.filter_by(profile_id=member_id, checkin_date=today).first()
        yesterday = DailyCheckin.query.filter_by(
            profile_id=member_id, checkin_date=today - timedelta(days=1)
        ).first()

        if todays:
            streak = todays.streak_count
            next_streak = streak + 1
        else:
            streak = yesterday.streak_count if yesterday else 0
            next_streak = streak + 1

        return {
            'checked_in_today': todays is not None,
            'streak': streak,
            'next_day_number': checkin_day_number(next_streak, cycle),
            'schedule': [
                {
                    'day_number': day,
                    'coins_reward': self.checkin_coins_for_day(day),
                    'is_bonus': day == cycle,
                }
                for day in range(1, cycle + 1)
            ],
        }

    # ==================== Missions ====================

    def complete_mission(self, member_id: int, mission_id: int, proof: Optional[Dict] = None) -> Dict[str, Any]:
        """
        Submit a mission.

        QR missions need the matching `qr_code`, location missions a
        `location` or `latitude`/`longitude`; both are approved and paid
        immediately. Manual missions need a `proof_image_url` and wait in
        `pending` until an admin reviews them.

        The award is the mission's base points/coins unless a reward
        override matches the member.
        """
        proof = proof or {}
        mission = db.session.get(Mission, mission_id)
        if mission is None:
            raise ItemNotFoundError('Mission', mission_id)
        profile = self._load_member(member_id)

        completion = MissionCompletion.query.filter_by(profile_id=member_id, mission_id=mission_id).first()
        if completion is not None and completion.status != ReviewStatus.REJECTED.value:
            # Approved is done; pending is waiting on review. Neither pays again.
            return _mission_result(completion)

        if not mission.is_open():
            raise NotActiveError('Mission', mission_id)
        member = MemberSnapshot.from_profile(profile)
        if not is_eligible(member, mission):
            raise IneligibleError('Mission', mission_id)

        self._check_proof(mission, proof)
        points, coins = resolve_award(member, mission.points_reward, mission.coins_reward,
                                      mission.reward_overrides)
        immediate = mission.mission_type in (MissionType.QR.value, MissionType.LOCATION.value)
        now = datetime.utcnow()

        values = {
            'status': ReviewStatus.APPROVED.value if immediate else ReviewStatus.PENDING.value,
            'points_earned': points,
            'coins_earned': coins,
            'proof_image_url': proof.get('proof_image_url'),
            'proof_data': {k: v for k, v in proof.items() if k != 'proof_image_url'} or None,
            'completed_at': now if immediate else None,
            'admin_notes': None,
            'reviewed_at': None,
            'reviewed_by': None,
        }

        try:
            if completion is None:
                completion = MissionCompletion(profile_id=member_id, mission_id=mission_id, **values)
                db.session.add(completion)
                db.session.flush()
            else:
                # Resubmission after rejection
                claimed = db.session.execute(
                    update(MissionCompletion)
                    .where(MissionCompletion.id == completion.id,
                           MissionCompletion.status == ReviewStatus.REJECTED.value)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if claimed.rowcount != 1:
                    db.session.rollback()
                    return _mission_result(self._existing_mission(member_id, mission_id))
                db.session.refresh(completion)

            if immediate:
                self.pay_mission(completion, mission)
            db.session.commit()

        except IntegrityError:
            db.session.rollback()
            return _mission_result(self._existing_mission(member_id, mission_id))
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f"Mission {mission_id} submitted by profile {member_id}: {completion.status} "
            f"({points} pts, {coins} coins)"
        )
        return _result(completion, False,
                       points=points if immediate else 0,
                       coins=coins if immediate else 0,
                       status=completion.status)

    @staticmethod
    def _check_proof(mission: Mission, proof: Dict):
        if mission.mission_type == MissionType.QR.value:
            code = (proof.get('qr_code') or '').strip()
            if not mission.qr_code or code != mission.qr_code:
                raise ValidationError('QR code does not match this mission', field='qr_code')
        elif mission.mission_type == MissionType.LOCATION.value:
            has_coords = proof.get('latitude') is not None and proof.get('longitude') is not None
            if not has_coords and _is_blank(proof.get('location')):
                raise ValidationError('Location proof is required', field='location')
        elif _is_blank(proof.get('proof_image_url')):
            raise ValidationError('Proof image is required', field='proof_image_url')

    def pay_mission(self, completion: MissionCompletion, mission: Mission):
        """Ledger legs for an approved completion. Caller commits."""
        description = f'Mission: {mission.title}'
        if completion.points_earned > 0:
            self.ledger.add_points(completion.profile_id, completion.points_earned,
                                   TransactionSource.MISSION, description=description,
                                   source_id=mission.id, commit=False)
        if completion.coins_earned > 0:
            self.ledger.add_coins(completion.profile_id, completion.coins_earned,
                                  TransactionSource.MISSION, description=description,
                                  source_id=mission.id, commit=False)

    @staticmethod
    def _existing_mission(member_id, mission_id):
        return MissionCompletion.query.filter_by(profile_id=member_id, mission_id=mission_id).first()
