import pytest

from app import create_app
from config import TestingConfig
from extensions import db
from models import Brand, Criterion, Questionnaire, User
from notifier import ChannelNotifier
from repository import ResponseRepository


class RecordingNotifier(ChannelNotifier):
    """Запоминает все опубликованные события."""

    def __init__(self):
        super().__init__()
        self.published = []

    def publish(self, channel, event):
        self.published.append((channel, event))
        return super().publish(channel, event)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(notifier):
    app = create_app(TestingConfig, notifier=notifier)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def repository(app):
    return ResponseRepository(db.session)


def make_user(code, role='participant', nickname=None):
    user = User(code=code, role=role, nickname=nickname)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin(app):
    return make_user('000001', role='admin', nickname='admin')


@pytest.fixture
def participant(app):
    return make_user('100001', nickname='taster-1')


@pytest.fixture
def other_participant(app):
    return make_user('100002', nickname='taster-2')


@pytest.fixture
def questionnaire(app, admin):
    questionnaire = Questionnaire(
        title='Yogurt tasting',
        created_by=admin.id,
        brands=[Brand(name='A', order=0), Brand(name='B', order=1)],
        criteria=[
            Criterion(key='appearance', description='Appearance', order=0),
            Criterion(key='flavor', description='Flavor', order=1),
        ],
    )
    db.session.add(questionnaire)
    db.session.commit()
    return questionnaire


@pytest.fixture
def brands(questionnaire):
    brand_a, brand_b = questionnaire.brands
    return brand_a, brand_b


def full_payload(brand_a, brand_b, ratings=(4, 5, 3, 4), preferred=None):
    """Полный ответ: A-appearance, A-flavor, B-appearance, B-flavor."""
    a_appearance, a_flavor, b_appearance, b_flavor = ratings
    return {
        'answers': [
            {'brand_id': brand_a.id, 'criterion': 'appearance', 'rating': a_appearance},
            {'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': a_flavor},
            {'brand_id': brand_b.id, 'criterion': 'appearance', 'rating': b_appearance},
            {'brand_id': brand_b.id, 'criterion': 'flavor', 'rating': b_flavor},
        ],
        'comparative_evaluation': {
            'preferred_brand_id': (preferred or brand_a).id,
            'comments': 'A is creamier',
        },
    }


def login(client, user):
    with client.session_transaction() as sess:
        sess['user_id'] = user.id
        sess['user_role'] = user.role
