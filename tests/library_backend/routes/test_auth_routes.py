from library_backend.auth import jwt_handler
from library_backend.auth.passwords import hash_password
from library_backend.models.user import User


def test_me_returns_identity_from_token(client, student, student_headers) -> None:
    response = client.get('/auth/me', headers=student_headers)

    assert response.status_code == 200
    assert response.json() == {'user_id': student.id, 'role': 'student'}


def test_logout_revokes_the_presented_token(client, librarian_headers) -> None:
    logout_response = client.post('/auth/logout', headers=librarian_headers)

    assert logout_response.status_code == 200
    assert logout_response.json()['revoked'] is True

    after_logout = client.get('/librarian/books', headers=librarian_headers)
    assert after_logout.status_code == 401
    assert after_logout.json()['message'] == 'Token has been revoked'


def test_logout_requires_a_token(client) -> None:
    response = client.post('/auth/logout')

    assert response.status_code == 401


def test_student_login_issues_student_token(client, student) -> None:
    response = client.post('/student/login', json={'username': 'alice', 'password': 'student123'})

    assert response.status_code == 200
    body = response.json()
    assert body['role'] == 'student'
    assert body['user'] == {'id': student.id, 'username': 'alice'}
    identity = jwt_handler.decode_access_token(body['token'])
    assert identity.role == 'student'
    assert identity.user_id == student.id


def test_student_login_rejects_wrong_password(client, student) -> None:
    response = client.post('/student/login', json={'username': 'alice', 'password': 'nope'})

    assert response.status_code == 400
    assert response.json()['error'] == 'invalid_credentials'
    assert 'token' not in response.json()


def test_student_root_requires_student_role(client, student_headers, librarian_headers) -> None:
    assert client.get('/student/', headers=student_headers).status_code == 200
    assert client.get('/student/', headers=librarian_headers).status_code == 403
    assert client.get('/student/').status_code == 401


def test_health_and_root_are_public(client) -> None:
    assert client.get('/').json() == {'status': 'Library Catalog API Running'}
    health = client.get('/health').json()
    assert health['status'] == 'ok'
    assert health['timestamp']


def test_unknown_route_uses_error_envelope(client) -> None:
    response = client.get('/no-such-route')

    assert response.status_code == 404
    assert response.json()['success'] is False


def test_student_login_rejects_accounts_without_student_role(client, db_session) -> None:
    db_session.add(User(username='staffer', hashed_password=hash_password('staff123', rounds=4), role='staff'))
    db_session.commit()

    response = client.post('/student/login', json={'username': 'staffer', 'password': 'staff123'})

    assert response.status_code == 400
    assert response.json()['error'] == 'invalid_credentials'
    assert 'token' not in response.json()
