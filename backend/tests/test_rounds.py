import pytest

from poker import db
from poker.models import Story, Vote


def _rewind(app, story_id, seconds):
    """Pretend voting started ``seconds`` earlier than it did."""
    with app.app_context():
        story = db.session.get(Story, story_id)
        story.voting_started_at -= seconds
        db.session.commit()


def _vote_count(app, story_id):
    with app.app_context():
        return Vote.query.filter_by(story_id=story_id).count()


def test_create_story_defaults(pm, session_id):
    res = pm.post('/api/stories', json={'session_id': session_id, 'title': 'Checkout'})
    assert res.status_code == 201
    story = res.get_json()['story']
    assert story['status'] == 'pending'
    assert story['time_limit_minutes'] == 5
    assert story['final_estimate'] is None
    assert story['voting_deadline'] is None

    listed = pm.get(f'/api/stories?session_id={session_id}').get_json()['stories']
    assert [s['title'] for s in listed] == ['Checkout']


def test_create_story_validation(pm, dev1, session_id):
    assert pm.post('/api/stories', json={'session_id': session_id}).status_code == 400
    assert pm.post('/api/stories', json={'session_id': session_id, 'title': 'x', 'time_limit_minutes': 0}).status_code == 400
    assert pm.post('/api/stories', json={'session_id': 9999, 'title': 'x'}).status_code == 404
    assert dev1.post('/api/stories', json={'session_id': session_id, 'title': 'x'}).status_code == 403
    assert pm.get('/api/stories').status_code == 400


def test_full_round_reveals_rounded_mean(pm, dev1, dev2, voting_story_id):
    assert dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 3, 'comment': 'easy'}).status_code == 201
    assert dev2.post('/api/votes', json={'story_id': voting_story_id, 'value': 5}).status_code == 201

    res = pm.post(f'/api/stories/{voting_story_id}/reveal')
    assert res.status_code == 200
    data = res.get_json()
    assert data['story']['status'] == 'completed'
    assert data['story']['final_estimate'] == 4
    assert data['summary'] == {'count': 2, 'min': 3, 'max': 5, 'mean': 4.0}
    assert sorted(v['value'] for v in data['votes']) == [3, 5]


def test_half_mean_rounds_up(pm, dev1, dev2, voting_story_id):
    dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 1})
    dev2.post('/api/votes', json={'story_id': voting_story_id, 'value': 2})
    story = pm.post(f'/api/stories/{voting_story_id}/reveal').get_json()['story']
    assert story['final_estimate'] == 2


def test_start_voting_records_deadline(pm, story_id):
    story = pm.post(f'/api/stories/{story_id}/start').get_json()['story']
    assert story['status'] == 'voting'
    assert story['voting_deadline'] - story['voting_started_at'] == pytest.approx(2 * 60)


def test_start_voting_only_from_pending(pm, voting_story_id):
    res = pm.post(f'/api/stories/{voting_story_id}/start')
    assert res.status_code == 409
    assert res.get_json()['code'] == 'invalid_state'


def test_developer_cannot_start_or_reveal(pm, dev1, story_id):
    res = dev1.post(f'/api/stories/{story_id}/start')
    assert res.status_code == 403
    assert res.get_json()['code'] == 'forbidden'

    pm.post(f'/api/stories/{story_id}/start')
    dev1.post('/api/votes', json={'story_id': story_id, 'value': 8})
    res = dev1.post(f'/api/stories/{story_id}/reveal')
    assert res.status_code == 403
    assert pm.get(f'/api/stories/{story_id}').get_json()['story']['status'] == 'voting'


def test_second_vote_is_already_voted(flask_app, dev1, voting_story_id):
    assert dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 3}).status_code == 201
    for value in (3, 13):
        res = dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': value})
        assert res.status_code == 409
        assert res.get_json()['code'] == 'already_voted'
    assert _vote_count(flask_app, voting_story_id) == 1


def test_vote_rejected_outside_voting(pm, dev1, story_id):
    res = dev1.post('/api/votes', json={'story_id': story_id, 'value': 3})
    assert res.status_code == 409
    assert res.get_json()['code'] == 'invalid_state'


def test_vote_validation(flask_app, dev1, voting_story_id):
    assert dev1.post('/api/votes', json={'value': 3}).get_json()['code'] == 'validation_error'
    assert dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 4}).status_code == 400
    assert dev1.post('/api/votes', json={'story_id': voting_story_id}).status_code == 400
    assert dev1.post('/api/votes', json={'story_id': 9999, 'value': 3}).status_code == 404
    # Fractions and booleans are not truncated into deck values
    assert dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 3.7}).status_code == 400
    assert dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': True}).status_code == 400
    assert _vote_count(flask_app, voting_story_id) == 0


def test_only_session_developers_vote(pm, login, voting_story_id):
    outsider = login('outsider')
    assert outsider.post('/api/votes', json={'story_id': voting_story_id, 'value': 3}).status_code == 403
    assert pm.post('/api/votes', json={'story_id': voting_story_id, 'value': 3}).status_code == 403


def test_reveal_requires_votes_and_voting_status(pm, story_id):
    assert pm.post(f'/api/stories/{story_id}/reveal').status_code == 409
    pm.post(f'/api/stories/{story_id}/start')
    res = pm.post(f'/api/stories/{story_id}/reveal')
    assert res.status_code == 409
    assert 'without votes' in res.get_json()['error']


def test_reveal_twice_keeps_first_estimate(pm, dev1, dev2, voting_story_id):
    dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 3})
    assert pm.post(f'/api/stories/{voting_story_id}/reveal').get_json()['story']['final_estimate'] == 3
    # Late vote is refused once the round is closed
    assert dev2.post('/api/votes', json={'story_id': voting_story_id, 'value': 21}).status_code == 409
    assert pm.post(f'/api/stories/{voting_story_id}/reveal').status_code == 409
    assert pm.get(f'/api/stories/{voting_story_id}').get_json()['story']['final_estimate'] == 3


def test_expire_before_deadline_is_rejected(pm, voting_story_id):
    res = pm.post(f'/api/stories/{voting_story_id}/expire')
    assert res.status_code == 409
    assert pm.get(f'/api/stories/{voting_story_id}').get_json()['story']['status'] == 'voting'


def test_expire_completes_without_estimate(flask_app, pm, dev1, voting_story_id):
    dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 5})
    _rewind(flask_app, voting_story_id, 2 * 60)

    res = dev1.post(f'/api/stories/{voting_story_id}/expire')
    assert res.status_code == 200
    story = res.get_json()['story']
    assert story['status'] == 'completed'
    assert story['final_estimate'] is None

    # Completed is terminal
    assert pm.post(f'/api/stories/{voting_story_id}/reveal').status_code == 409
    assert pm.post(f'/api/stories/{voting_story_id}/start').status_code == 409


def test_expire_rejected_once_everyone_voted(flask_app, pm, dev1, dev2, voting_story_id):
    dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 3})
    dev2.post('/api/votes', json={'story_id': voting_story_id, 'value': 5})
    _rewind(flask_app, voting_story_id, 2 * 60)

    res = dev1.post(f'/api/stories/{voting_story_id}/expire')
    assert res.status_code == 409
    assert res.get_json()['code'] == 'invalid_state'

    # Still open for the facilitator to reveal
    res = pm.post(f'/api/stories/{voting_story_id}/reveal')
    assert res.status_code == 200
    assert res.get_json()['story']['final_estimate'] == 4


def test_delete_story_removes_votes(flask_app, pm, dev1, dev2, voting_story_id):
    dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 3})
    dev2.post('/api/votes', json={'story_id': voting_story_id, 'value': 5})

    assert dev1.delete(f'/api/stories/{voting_story_id}').status_code == 403
    assert pm.delete(f'/api/stories/{voting_story_id}').status_code == 200

    assert _vote_count(flask_app, voting_story_id) == 0
    assert pm.get(f'/api/stories/{voting_story_id}').status_code == 404
    assert pm.get(f'/api/votes?story_id={voting_story_id}').status_code == 404


def test_votes_stay_blind_until_completed(pm, dev1, dev2, voting_story_id, users):
    dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 8, 'comment': 'risky'})

    listed = dev2.get(f'/api/votes?story_id={voting_story_id}').get_json()['votes']
    assert len(listed) == 1
    assert 'value' not in listed[0]

    mine = dev1.get(f'/api/votes/mine?story_id={voting_story_id}').get_json()['vote']
    assert mine['value'] == 8
    assert dev2.get(f'/api/votes/mine?story_id={voting_story_id}').get_json()['vote'] is None

    status = pm.get(f'/api/stories/{voting_story_id}/participants').get_json()
    assert status['voted_count'] == 1
    assert status['total'] == 2
    assert status['all_voted'] is False
    by_id = {p['id']: p for p in status['participants']}
    assert by_id[users['dev1']]['has_voted'] is True
    assert by_id[users['dev2']]['has_voted'] is False
    assert 'vote' not in by_id[users['dev1']]
    # The facilitator is a session member but not a voter
    assert users['pm'] not in by_id

    dev2.post('/api/votes', json={'story_id': voting_story_id, 'value': 8})
    pm.post(f'/api/stories/{voting_story_id}/reveal')
    status = pm.get(f'/api/stories/{voting_story_id}/participants').get_json()
    assert status['all_voted'] is True
    assert status['final_estimate'] == 8
    by_id = {p['id']: p for p in status['participants']}
    assert by_id[users['dev1']]['vote'] == 8
    assert by_id[users['dev1']]['comment'] == 'risky'
