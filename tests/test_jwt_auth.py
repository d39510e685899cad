"""
JWT actor resolution tests.

Tests cover:
  - token round-trip (sub is a string on the wire, int in the engine)
  - expired / wrong-type / wrong-secret tokens → 401
  - inactive salesperson → 401
  - the actor's level comes from the database, not the token
  - flask issue-token CLI
"""
import jwt
import pytest

from app.models import db
from app.models.organization import PositionLevel
from app.services.jwt_service import (
    decode_access_token,
    generate_access_token,
    salesperson_id_from,
)


class TestJwtService:
    def test_round_trip(self, app, staff):
        token = generate_access_token(staff.id, PositionLevel.STAFF)
        payload = decode_access_token(token)
        assert payload["sub"] == str(staff.id)
        assert payload["position_level"] == PositionLevel.STAFF
        assert salesperson_id_from(payload) == staff.id

    def test_expired(self, app, staff):
        token = generate_access_token(staff.id, PositionLevel.STAFF, expires_in=-30)
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(token)

    def test_wrong_type(self, app):
        token = jwt.encode({"sub": "1", "type": "refresh"}, app.config["JWT_SECRET_KEY"],
                           algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(token)

    def test_non_numeric_subject(self):
        with pytest.raises(jwt.InvalidTokenError):
            salesperson_id_from({"sub": "yamada"})


class TestMiddleware:
    def test_expired_token_is_401(self, client, staff):
        token = generate_access_token(staff.id, PositionLevel.STAFF, expires_in=-30)
        res = client.get("/api/v1/reports", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_foreign_secret_is_401(self, client, staff):
        token = jwt.encode({"sub": str(staff.id), "type": "access"}, "another-secret-entirely-here",
                           algorithm="HS256")
        res = client.get("/api/v1/reports", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_inactive_salesperson_is_401(self, client, staff, auth_headers):
        headers = auth_headers(staff)
        staff.is_active = False
        db.session.commit()
        res = client.get("/api/v1/reports", headers=headers)
        assert res.status_code == 401

    def test_level_is_read_from_database(self, client, staff, auth_headers):
        # Token claims director, row says staff: the queue must stay closed.
        token = generate_access_token(staff.id, PositionLevel.DIRECTOR)
        res = client.get("/api/v1/approvals", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 403

    def test_request_id_header(self, client, staff, auth_headers):
        res = client.get("/api/v1/reports", headers={**auth_headers(staff), "X-Request-ID": "abc123"})
        assert res.status_code == 200
        assert res.headers["X-Request-ID"] == "abc123"


class TestIssueTokenCli:
    def test_issue_token(self, app, staff):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["issue-token", staff.email])
        assert result.exit_code == 0
        token = result.output.strip()
        assert salesperson_id_from(decode_access_token(token)) == staff.id

    def test_unknown_email(self, app, positions):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["issue-token", "nobody@example.com"])
        assert result.exit_code != 0
