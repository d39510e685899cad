"""
Daily report API tests.

Tests cover:
  - 401 without a bearer token
  - create / read / update / delete through /api/v1/reports
  - submit / withdraw and the kind → HTTP status mapping
  - duplicate date → 409, invalid payloads → 422
  - visibility-scoped listing
  - comments and approval history
"""
from datetime import date

import pytest

from app.models.daily_report import ReportStatus


# ── Fixtures ────────────────────────────────────────────────────────────

@pytest.fixture()
def staff_headers(staff, auth_headers):
    return auth_headers(staff)


@pytest.fixture()
def manager_headers(manager, auth_headers):
    return auth_headers(manager)


# ═════════════════════════════════════════════════════════════════════════
# AUTH
# ═════════════════════════════════════════════════════════════════════════

class TestAuthRequired:
    @pytest.mark.parametrize("method,path", [
        ("get", "/api/v1/reports"),
        ("post", "/api/v1/reports"),
        ("get", "/api/v1/reports/1"),
        ("post", "/api/v1/reports/1/submit"),
        ("get", "/api/v1/approvals"),
        ("delete", "/api/v1/attachments/1"),
    ])
    def test_requires_token(self, client, method, path):
        res = getattr(client, method)(path)
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHORIZED"

    def test_garbage_token(self, client):
        res = client.get("/api/v1/reports", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401

    def test_health_is_public(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"

    def test_live_checks_database(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        assert res.get_json()["checks"]["database"]["status"] == "ok"

    def test_unknown_route_is_json_404(self, client):
        res = client.get("/api/v1/nope")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


# ═════════════════════════════════════════════════════════════════════════
# CRUD
# ═════════════════════════════════════════════════════════════════════════

class TestReportCRUD:
    def test_create_report(self, client, staff_headers, customer):
        res = client.post("/api/v1/reports", headers=staff_headers, json={
            "report_date": "2026-10-19",
            "problem": "Pricing pressure",
            "plan": "Visit XYZ",
            "status": "approved",
            "visits": [{"customer_id": customer.id, "visit_time": "10:00",
                        "content": "Demo", "result": "negotiating"}],
        })
        assert res.status_code == 201
        data = res.get_json()
        assert data["status"] == "draft"
        assert data["visits"][0]["visit_time"] == "10:00"
        assert data["visits"][0]["customer"]["name"] == "ABC Corp"
        assert "submit" in data["available_actions"]

    def test_duplicate_date_is_409(self, client, staff, staff_headers, make_report):
        make_report(staff)
        res = client.post("/api/v1/reports", headers=staff_headers, json={"report_date": "2026-10-19"})
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_CONFLICT_DUPLICATE"
        assert body["details"]["reason"] == "DUPLICATE_REPORT"

    @pytest.mark.parametrize("payload,code", [
        ({}, "ERR_VALIDATION_REQUIRED"),
        ({"report_date": "19/10/2026"}, "ERR_VALIDATION_INVALID"),
        ({"report_date": "2026-10-19", "visits": "many"}, "ERR_VALIDATION_INVALID"),
        ({"report_date": "2026-10-19", "visits": [{"customer_id": 1}]}, "ERR_VALIDATION_INVALID"),
    ])
    def test_create_validation(self, client, staff_headers, customer, payload, code):
        res = client.post("/api/v1/reports", headers=staff_headers, json=payload)
        assert res.status_code == 422
        assert res.get_json()["code"] == code

    def test_non_object_body_is_400(self, client, staff_headers):
        res = client.post("/api/v1/reports", headers=staff_headers, json=["2026-10-19"])
        assert res.status_code == 400

    def test_get_report_as_manager(self, client, staff, manager_headers, make_report):
        report = make_report(staff)
        res = client.get(f"/api/v1/reports/{report.id}", headers=manager_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["id"] == report.id
        assert data["available_actions"] == ["view"]
        assert data["rejection_reason"] is None

    def test_get_report_forbidden_for_stranger(self, client, staff, other_staff, auth_headers,
                                               make_report):
        report = make_report(staff)
        res = client.get(f"/api/v1/reports/{report.id}", headers=auth_headers(other_staff))
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_get_missing_report(self, client, staff_headers):
        res = client.get("/api/v1/reports/9999", headers=staff_headers)
        assert res.status_code == 404

    def test_update_problem_and_plan(self, client, staff, staff_headers, make_report):
        report = make_report(staff, status=ReportStatus.REJECTED)
        res = client.put(f"/api/v1/reports/{report.id}", headers=staff_headers,
                         json={"problem": "new problem", "status": "draft"})
        assert res.status_code == 200
        data = res.get_json()
        assert data["problem"] == "new problem"
        assert data["status"] == "rejected"

    def test_update_locked_report_is_403(self, client, staff, staff_headers, make_report):
        report = make_report(staff, status=ReportStatus.SUBMITTED)
        res = client.put(f"/api/v1/reports/{report.id}", headers=staff_headers, json={"plan": "x"})
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_INVALID_STATUS"

    def test_delete_draft(self, client, staff, staff_headers, make_report):
        report = make_report(staff)
        res = client.delete(f"/api/v1/reports/{report.id}", headers=staff_headers)
        assert res.status_code == 204
        res = client.get(f"/api/v1/reports/{report.id}", headers=staff_headers)
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════
# TRANSITIONS
# ═════════════════════════════════════════════════════════════════════════

class TestSubmitWithdraw:
    def test_submit(self, client, staff, staff_headers, make_report):
        report = make_report(staff)
        res = client.post(f"/api/v1/reports/{report.id}/submit", headers=staff_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "submitted"
        assert data["submitted_at"] is not None
        assert data["available_actions"] == ["view", "withdraw"]

    def test_submit_without_visits_is_422(self, client, staff, staff_headers, make_report):
        report = make_report(staff, visits=0)
        res = client.post(f"/api/v1/reports/{report.id}/submit", headers=staff_headers)
        assert res.status_code == 422
        assert res.get_json()["details"]["reason"] == "NO_VISITS"

    def test_submit_by_manager_is_403(self, client, staff, manager_headers, make_report):
        report = make_report(staff)
        res = client.post(f"/api/v1/reports/{report.id}/submit", headers=manager_headers)
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_withdraw(self, client, staff, staff_headers, make_report):
        report = make_report(staff, status=ReportStatus.SUBMITTED)
        res = client.post(f"/api/v1/reports/{report.id}/withdraw", headers=staff_headers)
        assert res.status_code == 200
        assert res.get_json()["status"] == "draft"

    def test_withdraw_after_approval(self, client, staff, staff_headers, make_report):
        report = make_report(staff, status=ReportStatus.MANAGER_APPROVED)
        res = client.post(f"/api/v1/reports/{report.id}/withdraw", headers=staff_headers)
        assert res.status_code == 403
        body = res.get_json()
        assert body["code"] == "ERR_INVALID_STATUS"
        assert body["details"]["reason"] == "ALREADY_APPROVED"


# ═════════════════════════════════════════════════════════════════════════
# LISTING
# ═════════════════════════════════════════════════════════════════════════

class TestListReports:
    def test_staff_sees_own_only(self, client, staff, other_staff, staff_headers, make_report):
        mine = make_report(staff)
        make_report(other_staff)
        res = client.get(f"/api/v1/reports?salesperson_id={other_staff.id}", headers=staff_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == mine.id
        assert data["items"][0]["visit_count"] == 1

    def test_director_sees_all_and_filters(self, client, staff, other_staff, director,
                                           auth_headers, make_report):
        make_report(staff, status=ReportStatus.SUBMITTED)
        make_report(other_staff)
        headers = auth_headers(director)

        res = client.get("/api/v1/reports", headers=headers)
        assert res.get_json()["total"] == 2

        res = client.get("/api/v1/reports?status=submitted", headers=headers)
        assert res.get_json()["total"] == 1

        res = client.get("/api/v1/reports?date_from=2026-10-20", headers=headers)
        assert res.get_json()["total"] == 0

    def test_invalid_status_filter(self, client, staff_headers):
        res = client.get("/api/v1/reports?status=archived", headers=staff_headers)
        assert res.status_code == 422

    def test_pagination(self, client, staff, staff_headers, make_report):
        for day in range(1, 4):
            make_report(staff, report_date=date(2026, 10, day))
        res = client.get("/api/v1/reports?per_page=2&page=2", headers=staff_headers)
        data = res.get_json()
        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert len(data["items"]) == 1


# ═════════════════════════════════════════════════════════════════════════
# COMMENTS & HISTORY
# ═════════════════════════════════════════════════════════════════════════

class TestCommentsAndHistory:
    def test_comment_thread(self, client, staff, staff_headers, manager_headers, make_report):
        report = make_report(staff, status=ReportStatus.SUBMITTED)

        res = client.post(f"/api/v1/reports/{report.id}/comments", headers=manager_headers,
                          json={"content": "Good visit"})
        assert res.status_code == 201
        comment_id = res.get_json()["id"]

        res = client.get(f"/api/v1/reports/{report.id}/comments", headers=staff_headers)
        assert [c["content"] for c in res.get_json()["items"]] == ["Good visit"]

        res = client.delete(f"/api/v1/comments/{comment_id}", headers=staff_headers)
        assert res.status_code == 403

        res = client.delete(f"/api/v1/comments/{comment_id}", headers=manager_headers)
        assert res.status_code == 204

    def test_empty_comment_is_422(self, client, staff, staff_headers, make_report):
        report = make_report(staff)
        res = client.post(f"/api/v1/reports/{report.id}/comments", headers=staff_headers,
                          json={"content": ""})
        assert res.status_code == 422

    def test_history_after_rejection(self, client, staff, staff_headers, manager_headers, make_report):
        report = make_report(staff, status=ReportStatus.SUBMITTED)
        client.post(f"/api/v1/reports/{report.id}/reject", headers=manager_headers,
                    json={"comment": "Add customer names"})

        res = client.get(f"/api/v1/reports/{report.id}/history", headers=staff_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["decision_count"] == 1
        assert data["rejection_reason"] == "Add customer names"
        assert data["entries"][0]["approval_level"] == "manager"

        res = client.get(f"/api/v1/reports/{report.id}", headers=staff_headers)
        assert res.get_json()["rejection_reason"] == "Add customer names"
