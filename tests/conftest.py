import pytest

from carenotes import create_app


@pytest.fixture
def app():
    flask_app = create_app({
        "TESTING": True,
        "DATABASE_URL": "sqlite://",
    })
    yield flask_app
    flask_app.extensions["carenotes"].db.dispose()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def hierarchy(app):
    return app.extensions["carenotes"].hierarchy


@pytest.fixture
def notes(app):
    return app.extensions["carenotes"].notes


@pytest.fixture
def chain(hierarchy):
    # O -> T -> C -> E
    o = hierarchy.create_node('organisation', 'Org One')
    t = hierarchy.create_node('team', 'Team One', o['id'])
    c = hierarchy.create_node('client', 'Client One', t['id'])
    e = hierarchy.create_node('episode', 'Episode One', c['id'])
    return {"O": o, "T": t, "C": c, "E": e}
