"""
Tests for content, check-in and mission completion.

Completing anything twice must return the original record with
already_completed=True and must not write a second ledger row, even when
the item has since closed or been retargeted. A manual mission still waiting
for review is not completed.
"""
import pytest
from datetime import date, datetime, timedelta

from loyalty.extensions import db
from loyalty.models import (
    Profile,
    Content,
    QuizQuestion,
    SurveyQuestion,
    ContentProgress,
    Mission,
    MissionCompletion,
    DailyCheckin,
    CheckinReward,
    PointsTransaction,
    CoinsTransaction,
)
from loyalty.services.completion_service import (
    CompletionService,
    score_quiz,
    missing_survey_answers,
    checkin_day_number,
)
from loyalty.services.redemption_service import RedemptionService
from loyalty.utils.exceptions import (
    ItemNotFoundError,
    NotActiveError,
    IneligibleError,
    MemberNotFoundError,
    ValidationError,
)


def _add(obj):
    db.session.add(obj)
    db.session.commit()
    return obj


@pytest.fixture
def article(app):
    return _add(Content(title='Biosecurity 101', content_type='article', points_reward=50,
                        is_published=True, published_at=datetime.utcnow()))


@pytest.fixture
def quiz(app):
    content = _add(Content(title='Feed Quiz', content_type='quiz', points_reward=0, is_published=True))
    db.session.add_all([
        QuizQuestion(content_id=content.id, question='Q1', options=['a', 'b'], correct_answer=1,
                     points=10, order_index=0),
        QuizQuestion(content_id=content.id, question='Q2', options=['a', 'b'], correct_answer=0,
                     points=20, order_index=1),
    ])
    db.session.commit()
    return content


@pytest.fixture
def survey(app):
    content = _add(Content(title='Herd Survey', content_type='survey', points_reward=30, is_published=True))
    db.session.add_all([
        SurveyQuestion(content_id=content.id, question='Herd size?', is_required=True, order_index=0),
        SurveyQuestion(content_id=content.id, question='Comments', is_required=False, order_index=1),
    ])
    db.session.commit()
    return content


def _points_rows(profile_id):
    return PointsTransaction.query.filter_by(profile_id=profile_id).count()


class TestScoringHelpers:

    def test_score_quiz(self, quiz):
        questions = quiz.quiz_questions.all()
        q1, q2 = questions
        assert score_quiz(questions, {str(q1.id): 1, q2.id: 1}) == {'score': 1, 'points': 10}
        assert score_quiz(questions, {str(q1.id): 1, str(q2.id): 0}) == {'score': 2, 'points': 30}
        assert score_quiz(questions, {}) == {'score': 0, 'points': 0}

    def test_score_quiz_rejects_non_index(self, quiz):
        q1 = quiz.quiz_questions.first()
        with pytest.raises(ValidationError):
            score_quiz(quiz.quiz_questions.all(), {str(q1.id): 'b'})

    def test_score_quiz_requires_object(self, quiz):
        with pytest.raises(ValidationError):
            score_quiz(quiz.quiz_questions.all(), None)

    def test_missing_survey_answers(self, survey):
        questions = survey.survey_questions.all()
        required = questions[0]
        assert missing_survey_answers(questions, {}) == [required.id]
        assert missing_survey_answers(questions, {str(required.id): '   '}) == [required.id]
        assert missing_survey_answers(questions, {str(required.id): '120 head'}) == []

    @pytest.mark.parametrize('streak,day', [(1, 1), (6, 6), (7, 7), (8, 1), (14, 7), (15, 1)])
    def test_checkin_day_number(self, streak, day):
        assert checkin_day_number(streak, 7) == day


class TestCompleteContent:

    def test_article_awards_points(self, make_member, article):
        profile = make_member()
        result = CompletionService().complete_content(profile.id, article.id)

        assert result['already_completed'] is False
        assert result['points_earned'] == 50
        assert result['record'].is_completed is True
        assert db.session.get(Profile, profile.id).total_points == 50

        tx = PointsTransaction.query.filter_by(profile_id=profile.id).one()
        assert tx.source == 'content'
        assert tx.source_id == str(article.id)

    def test_second_completion_is_idempotent(self, make_member, article):
        profile = make_member()
        service = CompletionService()
        first = service.complete_content(profile.id, article.id)
        second = service.complete_content(profile.id, article.id)

        assert second['already_completed'] is True
        assert second['points_earned'] == 0
        assert second['record'].id == first['record'].id
        assert _points_rows(profile.id) == 1
        assert db.session.get(Profile, profile.id).total_points == 50

    def test_partial_progress_then_finish(self, make_member, article):
        profile = make_member()
        service = CompletionService()

        partial = service.complete_content(profile.id, article.id, {'progress_percent': 40})
        assert partial['record'].is_completed is False
        assert partial['points_earned'] == 0
        assert _points_rows(profile.id) == 0

        service.complete_content(profile.id, article.id, {'progress_percent': 20})
        progress = ContentProgress.query.filter_by(profile_id=profile.id).one()
        assert progress.progress_percent == 40

        done = service.complete_content(profile.id, article.id, {'progress_percent': 100})
        assert done['already_completed'] is False
        assert done['points_earned'] == 50
        assert ContentProgress.query.filter_by(profile_id=profile.id).count() == 1

    def test_completed_content_survives_tier_drop(self, small_tiers, make_member, make_reward, article):
        """A gold-only article stays completed after spending drops the member to bronze."""
        article.target_tiers = ['gold']
        db.session.commit()
        profile = make_member(points=600)
        service = CompletionService()
        first = service.complete_content(profile.id, article.id)

        reward = make_reward(points_cost=600)
        RedemptionService().redeem(profile.id, reward.id, '12 Farm Road', acting_member_id=profile.id)
        assert db.session.get(Profile, profile.id).tier == 'bronze'

        again = service.complete_content(profile.id, article.id)
        assert again['already_completed'] is True
        assert again['points_earned'] == 0
        assert again['record'].id == first['record'].id
        assert PointsTransaction.query.filter_by(profile_id=profile.id, source='content').count() == 1

    def test_completed_content_survives_unpublishing(self, make_member, article):
        profile = make_member()
        service = CompletionService()
        service.complete_content(profile.id, article.id)
        article.is_published = False
        db.session.commit()

        assert service.complete_content(profile.id, article.id)['already_completed'] is True
        with pytest.raises(NotActiveError):
            service.complete_content(make_member().id, article.id)

    def test_quiz_awards_correct_answers(self, make_member, quiz):
        profile = make_member()
        q1, q2 = quiz.quiz_questions.all()
        result = CompletionService().complete_content(
            profile.id, quiz.id, {'answers': {str(q1.id): 1, str(q2.id): 1}}
        )

        assert result['points_earned'] == 10
        assert result['record'].quiz_score == 1
        assert PointsTransaction.query.filter_by(profile_id=profile.id).one().source == 'quiz'

    def test_quiz_with_no_correct_answers_still_completes(self, make_member, quiz):
        profile = make_member()
        result = CompletionService().complete_content(profile.id, quiz.id, {'answers': {}})
        assert result['record'].is_completed is True
        assert result['points_earned'] == 0
        assert _points_rows(profile.id) == 0

    def test_survey_requires_answers(self, make_member, survey):
        profile = make_member()
        with pytest.raises(ValidationError):
            CompletionService().complete_content(profile.id, survey.id, {'responses': {}})
        assert ContentProgress.query.count() == 0

    def test_survey_awards_points(self, make_member, survey):
        profile = make_member()
        required = survey.survey_questions.first()
        result = CompletionService().complete_content(
            profile.id, survey.id, {'responses': {str(required.id): '120 head'}}
        )
        assert result['points_earned'] == 30
        assert result['record'].survey_responses == {str(required.id): '120 head'}

    def test_unpublished(self, make_member, article):
        article.is_published = False
        db.session.commit()
        with pytest.raises(NotActiveError):
            CompletionService().complete_content(make_member().id, article.id)

    def test_ineligible(self, make_member, article):
        article.target_member_types = ['veterinarian']
        db.session.commit()
        with pytest.raises(IneligibleError):
            CompletionService().complete_content(make_member().id, article.id)

    def test_unknown_content(self, make_member):
        with pytest.raises(ItemNotFoundError):
            CompletionService().complete_content(make_member().id, 99999)

    def test_unknown_member(self, article):
        with pytest.raises(MemberNotFoundError):
            CompletionService().complete_content(99999, article.id)


class TestDailyCheckin:

    def test_first_checkin(self, make_member):
        profile = make_member()
        result = CompletionService().daily_checkin(profile.id, today=date(2024, 3, 1))

        assert result['already_completed'] is False
        assert result['streak'] == 1
        assert result['day_number'] == 1
        assert result['coins_earned'] == 5
        assert db.session.get(Profile, profile.id).total_coins == 5

    def test_second_checkin_same_day(self, make_member):
        profile = make_member()
        service = CompletionService()
        service.daily_checkin(profile.id, today=date(2024, 3, 1))
        again = service.daily_checkin(profile.id, today=date(2024, 3, 1))

        assert again['already_completed'] is True
        assert again['coins_earned'] == 0
        assert CoinsTransaction.query.filter_by(profile_id=profile.id).count() == 1

    def test_streak_and_bonus_day(self, make_member):
        profile = make_member()
        service = CompletionService()
        start = date(2024, 3, 1)
        results = [service.daily_checkin(profile.id, today=start + timedelta(days=i)) for i in range(8)]

        assert [r['day_number'] for r in results] == [1, 2, 3, 4, 5, 6, 7, 1]
        assert results[6]['coins_earned'] == 50
        assert results[7]['streak'] == 8
        assert db.session.get(Profile, profile.id).total_coins == 6 * 5 + 50 + 5

    def test_missed_day_resets_streak(self, make_member):
        profile = make_member()
        service = CompletionService()
        service.daily_checkin(profile.id, today=date(2024, 3, 1))
        service.daily_checkin(profile.id, today=date(2024, 3, 2))
        result = service.daily_checkin(profile.id, today=date(2024, 3, 4))

        assert result['streak'] == 1
        assert result['day_number'] == 1

    def test_configured_schedule_overrides_defaults(self, make_member):
        _add(CheckinReward(day_number=1, coins_reward=12))
        profile = make_member()
        result = CompletionService().daily_checkin(profile.id, today=date(2024, 3, 1))
        assert result['coins_earned'] == 12

    def test_status(self, make_member):
        profile = make_member()
        service = CompletionService()
        service.daily_checkin(profile.id, today=date(2024, 3, 1))

        status = service.checkin_status(profile.id, today=date(2024, 3, 2))
        assert status['checked_in_today'] is False
        assert status['streak'] == 1
        assert status['next_day_number'] == 2
        assert len(status['schedule']) == 7
        assert status['schedule'][6] == {'day_number': 7, 'coins_reward': 50, 'is_bonus': True}

    def test_one_row_per_day(self, make_member):
        profile = make_member()
        service = CompletionService()
        for _ in range(3):
            service.daily_checkin(profile.id, today=date(2024, 3, 1))
        assert DailyCheckin.query.filter_by(profile_id=profile.id).count() == 1


class TestCompleteMission:

    @pytest.fixture
    def qr_mission(self, app):
        return _add(Mission(title='Scan at booth', mission_type='qr', qr_code='FARM-2024',
                            points_reward=100, coins_reward=10))

    @pytest.fixture
    def manual_mission(self, app):
        return _add(Mission(title='Photo of your herd', mission_type='manual', points_reward=40))

    def test_qr_mission_pays_immediately(self, make_member, qr_mission):
        profile = make_member()
        result = CompletionService().complete_mission(profile.id, qr_mission.id, {'qr_code': 'FARM-2024'})

        assert result['status'] == 'approved'
        assert result['points_earned'] == 100
        assert result['coins_earned'] == 10
        profile = db.session.get(Profile, profile.id)
        assert (profile.total_points, profile.total_coins) == (100, 10)

    def test_wrong_qr_code(self, make_member, qr_mission):
        profile = make_member()
        with pytest.raises(ValidationError):
            CompletionService().complete_mission(profile.id, qr_mission.id, {'qr_code': 'WRONG'})
        assert MissionCompletion.query.count() == 0

    def test_mission_is_idempotent(self, make_member, qr_mission):
        profile = make_member()
        service = CompletionService()
        service.complete_mission(profile.id, qr_mission.id, {'qr_code': 'FARM-2024'})
        again = service.complete_mission(profile.id, qr_mission.id, {'qr_code': 'FARM-2024'})

        assert again['already_completed'] is True
        assert _points_rows(profile.id) == 1

    def test_override_replaces_base_award(self, make_member, qr_mission):
        qr_mission.reward_overrides = [
            {'type': 'tier', 'value': 'bronze', 'points': 20, 'coins': 0},
            {'type': 'member_type', 'value': 'farm', 'sub_type': 'owner', 'points': 250, 'coins': 25},
        ]
        db.session.commit()
        owner = make_member(sub_type='owner')
        manager = make_member(sub_type='farm_manager')
        service = CompletionService()

        assert service.complete_mission(owner.id, qr_mission.id, {'qr_code': 'FARM-2024'})['points_earned'] == 250
        assert service.complete_mission(manager.id, qr_mission.id, {'qr_code': 'FARM-2024'})['points_earned'] == 20

    def test_location_mission(self, make_member, app):
        mission = _add(Mission(title='Visit the expo', mission_type='location', points_reward=30))
        profile = make_member()
        result = CompletionService().complete_mission(profile.id, mission.id,
                                                      {'latitude': 13.75, 'longitude': 100.5})
        assert result['status'] == 'approved'
        assert result['record'].proof_data == {'latitude': 13.75, 'longitude': 100.5}

    def test_manual_mission_waits_for_review(self, make_member, manual_mission):
        profile = make_member()
        result = CompletionService().complete_mission(
            profile.id, manual_mission.id, {'proof_image_url': 'https://cdn.example.com/herd.jpg'}
        )

        assert result['status'] == 'pending'
        assert result['points_earned'] == 0
        assert result['record'].points_earned == 40
        assert _points_rows(profile.id) == 0

    def test_manual_mission_needs_proof(self, make_member, manual_mission):
        with pytest.raises(ValidationError):
            CompletionService().complete_mission(make_member().id, manual_mission.id, {})

    def test_expired_mission(self, make_member, app):
        mission = _add(Mission(title='Old', mission_type='qr', qr_code='X',
                               end_date=datetime.utcnow() - timedelta(days=1)))
        with pytest.raises(NotActiveError):
            CompletionService().complete_mission(make_member().id, mission.id, {'qr_code': 'X'})

    def test_ineligible_mission(self, make_member, qr_mission):
        qr_mission.target_sub_types = {'farm': ['farm_manager']}
        db.session.commit()
        with pytest.raises(IneligibleError):
            CompletionService().complete_mission(make_member(sub_type='owner').id, qr_mission.id,
                                                 {'qr_code': 'FARM-2024'})

    def test_completed_mission_survives_closed_window(self, make_member, qr_mission):
        profile = make_member()
        service = CompletionService()
        first = service.complete_mission(profile.id, qr_mission.id, {'qr_code': 'FARM-2024'})
        qr_mission.end_date = datetime.utcnow() - timedelta(days=1)
        db.session.commit()

        again = service.complete_mission(profile.id, qr_mission.id, {'qr_code': 'FARM-2024'})
        assert again['already_completed'] is True
        assert again['status'] == 'approved'
        assert again['record'].id == first['record'].id
        assert _points_rows(profile.id) == 1

        with pytest.raises(NotActiveError):
            service.complete_mission(make_member().id, qr_mission.id, {'qr_code': 'FARM-2024'})

    def test_completed_mission_survives_retargeting(self, make_member, qr_mission):
        profile = make_member(sub_type='owner')
        service = CompletionService()
        service.complete_mission(profile.id, qr_mission.id, {'qr_code': 'FARM-2024'})
        qr_mission.target_sub_types = {'farm': ['farm_manager']}
        db.session.commit()

        again = service.complete_mission(profile.id, qr_mission.id, {'qr_code': 'FARM-2024'})
        assert again['already_completed'] is True
        assert _points_rows(profile.id) == 1

    def test_pending_resubmission_is_not_completed(self, make_member, manual_mission):
        profile = make_member()
        service = CompletionService()
        proof = {'proof_image_url': 'https://cdn.example.com/herd.jpg'}
        first = service.complete_mission(profile.id, manual_mission.id, proof)
        again = service.complete_mission(profile.id, manual_mission.id, proof)

        assert again['already_completed'] is False
        assert again['status'] == 'pending'
        assert again['points_earned'] == 0
        assert again['record'].id == first['record'].id
        assert MissionCompletion.query.count() == 1
        assert _points_rows(profile.id) == 0
