"""Tests for /api/users profile routes."""

import unittest
from datetime import date

from fastapi.testclient import TestClient

from adapter.fake.user_repository import FakeUserRepository
from api.dependencies import get_user_repo
from api.main import app
from api.security import get_token_issuer


class TestUsersRoutes(unittest.TestCase):

    def setUp(self):
        self.repo = FakeUserRepository()
        self.user = self.repo.create(email='alice@example.com', name='Alice', password_hash='hash')
        app.dependency_overrides[get_user_repo] = lambda: self.repo
        self.client = TestClient(app)
        token = get_token_issuer().issue(self.user.id)
        self.headers = {'Authorization': f'Bearer {token}'}

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_routes_require_authentication(self):
        for method, path in [
            ('get', '/api/users/profile'),
            ('put', '/api/users/profile'),
            ('put', '/api/users/avatar'),
            ('delete', '/api/users/account'),
            ('get', '/api/users/birthday'),
        ]:
            with self.subTest(path=path, method=method):
                response = getattr(self.client, method)(path)
                self.assertEqual(response.status_code, 401)

    def test_get_profile(self):
        response = self.client.get('/api/users/profile', headers=self.headers)

        self.assertEqual(response.status_code, 200)
        user = response.json()['user']
        self.assertEqual(user['email'], 'alice@example.com')
        self.assertIsNone(user['age'])
        self.assertFalse(user['isBirthday'])

    def test_set_and_clear_date_of_birth(self):
        set_response = self.client.put(
            '/api/users/profile', json={'dateOfBirth': '1990-05-17'}, headers=self.headers,
        )
        self.assertEqual(set_response.status_code, 200)
        self.assertTrue(set_response.json()['user']['dateOfBirth'].startswith('1990-05-17'))
        self.assertIsNotNone(set_response.json()['user']['age'])

        rename = self.client.put('/api/users/profile', json={'name': 'Alicia'}, headers=self.headers)
        self.assertTrue(rename.json()['user']['dateOfBirth'].startswith('1990-05-17'))

        cleared = self.client.put('/api/users/profile', json={'dateOfBirth': None}, headers=self.headers)
        self.assertIsNone(cleared.json()['user']['dateOfBirth'])
        self.assertEqual(cleared.json()['user']['name'], 'Alicia')

    def test_future_date_of_birth_is_400(self):
        next_year = date.today().year + 1
        response = self.client.put(
            '/api/users/profile', json={'dateOfBirth': f'{next_year}-01-01'}, headers=self.headers,
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['kind'], 'ValidationFailed')

    def test_update_avatar(self):
        response = self.client.put(
            '/api/users/avatar', json={'avatar': 'https://img.example/a.png'}, headers=self.headers,
        )
        self.assertEqual(response.json()['avatar'], 'https://img.example/a.png')

    def test_birthday_without_date(self):
        response = self.client.get('/api/users/birthday', headers=self.headers)

        body = response.json()
        self.assertFalse(body['isBirthday'])
        self.assertEqual(body['message'], 'No date of birth set')

    def test_birthday_today(self):
        today = date.today()
        born = date(1990, today.month, today.day) if (today.month, today.day) != (2, 29) else date(1992, 2, 29)
        self.client.put('/api/users/profile', json={'dateOfBirth': born.isoformat()}, headers=self.headers)

        body = self.client.get('/api/users/birthday', headers=self.headers).json()

        self.assertTrue(body['isBirthday'])
        self.assertTrue(body['message'].startswith('Happy '))

    def test_delete_account_then_token_is_rejected(self):
        response = self.client.delete('/api/users/account', headers=self.headers)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.repo.store, {})
        self.assertEqual(self.client.get('/api/users/profile', headers=self.headers).status_code, 401)


if __name__ == '__main__':
    unittest.main()
