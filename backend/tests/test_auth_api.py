# Overview: Pytest coverage for owner and employee authentication endpoints.

import pytest

from pdv.models import ActivityLog, Owner

from conftest import PASSWORD, auth_headers, get_auth_token


class TestRegister:
    """Owner registration creates a tenant on trial."""

    def test_register_success(self, client, db_session):
        response = client.post('/api/auth/register', json={
            'name': 'Loja Nova',
            'email': 'Nova@Loja.com',
            'password': PASSWORD,
        })

        assert response.status_code == 201
        user = response.json['user']
        assert user['email'] == 'nova@loja.com'
        assert user['payment_status'] == 'trial'
        assert response.json['trial']['days_remaining'] == 14
        assert db_session.query(ActivityLog).filter_by(action='REGISTER').count() == 1

    def test_register_uses_configured_trial_length(self, client, admin_headers):
        client.put('/api/admin/settings', json={'trial_period_days': 30}, headers=admin_headers)

        response = client.post('/api/auth/register', json={
            'name': 'Loja Nova', 'email': 'nova@loja.com', 'password': PASSWORD,
        })
        assert response.json['trial']['days_remaining'] == 30

    def test_duplicate_email(self, client, owner_a):
        response = client.post('/api/auth/register', json={
            'name': 'Copy', 'email': 'owner_a@loja-a.com', 'password': PASSWORD,
        })
        assert response.status_code == 409

    def test_email_taken_by_employee(self, client, employee_a):
        response = client.post('/api/auth/register', json={
            'name': 'Copy', 'email': 'seller@loja-a.com', 'password': PASSWORD,
        })
        assert response.status_code == 409

    @pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_password(self, client, db_session, password):
        response = client.post('/api/auth/register', json={
            'name': 'Weak', 'email': 'weak@loja.com', 'password': password,
        })
        assert response.status_code == 400
        assert db_session.query(Owner).count() == 0


class TestOwnerLogin:
    def test_login_success(self, client, db_session, owner_a):
        response = client.post('/api/auth/login', json={
            'email': 'owner_a@loja-a.com', 'password': PASSWORD,
        })

        assert response.status_code == 200
        assert response.json['tenant_id'] == owner_a.id
        assert len(response.json['token']) == 64
        assert db_session.query(ActivityLog).filter_by(action='LOGIN_SUCCEEDED').count() == 1

    def test_wrong_password(self, client, db_session, owner_a):
        response = client.post('/api/auth/login', json={
            'email': 'owner_a@loja-a.com', 'password': 'Wrong123!',
        })

        assert response.status_code == 401
        assert db_session.query(ActivityLog).filter_by(action='LOGIN_FAILED').count() == 1

    def test_missing_fields(self, client, db_session):
        response = client.post('/api/auth/login', json={'email': 'owner_a@loja-a.com'})
        assert response.status_code == 400

    def test_employee_cannot_use_owner_login(self, client, employee_a):
        response = client.post('/api/auth/login', json={
            'email': 'seller@loja-a.com', 'password': PASSWORD,
        })
        assert response.status_code == 401


class TestVerifyAndLogout:
    def test_verify_owner(self, client, owner_a):
        token = get_auth_token(client, 'owner_a@loja-a.com')
        response = client.get('/api/auth/verify', headers=auth_headers(token))

        assert response.status_code == 200
        assert response.json['valid'] is True
        assert response.json['user']['kind'] == 'owner'
        assert response.json['tenant_id'] == owner_a.id
        assert response.json['is_admin'] is False

    def test_verify_employee(self, client, owner_a, employee_headers):
        response = client.get('/api/auth/verify', headers=employee_headers)

        assert response.json['user']['kind'] == 'employee'
        assert response.json['tenant_id'] == owner_a.id

    def test_logout_revokes_token(self, client, owner_a_headers):
        assert client.post('/api/auth/logout', headers=owner_a_headers).status_code == 200
        assert client.get('/api/auth/verify', headers=owner_a_headers).status_code == 401
        assert client.post('/api/auth/logout', headers=owner_a_headers).status_code == 401

    def test_trial_status(self, client, owner_a_headers):
        response = client.get('/api/auth/trial-status', headers=owner_a_headers)

        assert response.status_code == 200
        assert response.json['payment_status'] == 'trial'
        assert response.json['is_expired'] is False
        assert response.json['is_paid'] is False
        assert response.json['is_blocked'] is False


class TestEmployeeLogin:
    def test_login_success(self, client, owner_a, employee_a):
        response = client.post('/api/employees/login', json={
            'email': 'seller@loja-a.com', 'password': PASSWORD,
        })

        assert response.status_code == 200
        assert response.json['tenant_id'] == owner_a.id
        assert response.json['user']['company_name'] == 'Loja A'

    def test_inactive_employee(self, client, db_session, employee_a):
        employee_a.is_active = False
        db_session.commit()

        response = client.post('/api/employees/login', json={
            'email': 'seller@loja-a.com', 'password': PASSWORD,
        })
        assert response.status_code == 401

    @pytest.mark.parametrize("status", ["pending", "cancelled"])
    def test_blocked_employer(self, client, db_session, owner_a, employee_a, status):
        owner_a.payment_status = status
        db_session.commit()

        response = client.post('/api/employees/login', json={
            'email': 'seller@loja-a.com', 'password': PASSWORD,
        })
        assert response.status_code == 403


class TestEmployeeManagement:
    """Owners manage their own employees."""

    def test_create_and_set_password(self, client, owner_a_headers):
        created = client.post('/api/employees', json={
            'name': 'Stock Keeper', 'email': 'stock@loja-a.com', 'role': 'stock',
        }, headers=owner_a_headers)
        assert created.status_code == 201
        assert created.json['has_password'] is False

        employee_id = created.json['id']
        response = client.put(f'/api/employees/{employee_id}/password', json={
            'password': PASSWORD,
        }, headers=owner_a_headers)
        assert response.status_code == 200

        login = client.post('/api/employees/login', json={
            'email': 'stock@loja-a.com', 'password': PASSWORD,
        })
        assert login.status_code == 200

    def test_delete_deactivates(self, client, employee_a, employee_headers, owner_a_headers):
        response = client.delete(f'/api/employees/{employee_a.id}', headers=owner_a_headers)
        assert response.status_code == 200

        listed = client.get('/api/employees?include_inactive=false', headers=owner_a_headers)
        assert listed.json['count'] == 0
        # Sessions of the deactivated employee stop working
        assert client.get('/api/stock', headers=employee_headers).status_code == 401
