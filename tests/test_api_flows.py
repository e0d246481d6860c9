"""End-to-end API tests: intake to booking to artifacts.

These drive the HTTP surface with real tokens so role checks, error
translation and response shapes are exercised together.
"""

from datetime import timedelta

import pytest

from clinic_api.utils.time import utc_now


@pytest.fixture
async def people(patient, doctor, admin_user, receptionist_user, auth_headers):
    """Tokens for each kind of caller."""
    return {
        "patient": auth_headers(patient.user),
        "doctor": auth_headers(doctor.user),
        "admin": auth_headers(admin_user),
        "receptionist": auth_headers(receptionist_user),
    }


class TestAuthentication:
    async def test_missing_token(self, client) -> None:
        response = await client.get("/api/v1/services/mine")

        assert response.status_code == 401

    async def test_garbage_token(self, client) -> None:
        response = await client.get(
            "/api/v1/services/mine", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    async def test_role_not_allowed(self, client, people) -> None:
        response = await client.get("/api/v1/service-requests", headers=people["patient"])

        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient permissions"

    async def test_staff_without_doctor_profile(self, client, people) -> None:
        response = await client.get("/api/v1/services/doctor/me", headers=people["receptionist"])

        assert response.status_code == 403


class TestErrorTranslation:
    async def test_short_reason_is_400(self, client, people, service_type) -> None:
        response = await client.post(
            "/api/v1/service-requests",
            headers=people["patient"],
            json={
                "service_type_id": service_type.id,
                "preferred_date_1": "2025-07-01",
                "preferred_time": "morning",
                "reason": "Too short",
            },
        )

        assert response.status_code == 400
        assert "at least 10 characters" in response.json()["detail"]

    async def test_malformed_body_is_400(self, client, people) -> None:
        response = await client.post(
            "/api/v1/services",
            headers=people["receptionist"],
            json={"start_time": "not a date"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid request"

    async def test_unknown_service_is_404(self, client, people) -> None:
        response = await client.get("/api/v1/services/missing", headers=people["admin"])

        assert response.status_code == 404

    async def test_invalid_transition_is_409(self, client, people, patient, book_service) -> None:
        service = await book_service(patient)
        await client.patch(f"/api/v1/services/{service.id}/cancel", headers=people["admin"])

        response = await client.patch(
            f"/api/v1/services/{service.id}/complete", headers=people["admin"]
        )

        assert response.status_code == 409


class TestPatientCancelApi:
    async def test_inside_window_refused(self, client, people, patient, book_service) -> None:
        service = await book_service(patient, hours_ahead=3)

        response = await client.patch(
            f"/api/v1/services/{service.id}/patient-cancel", headers=people["patient"]
        )

        assert response.status_code == 400
        assert "contact the clinic" in response.json()["detail"]

    async def test_ahead_of_window(self, client, people, patient, book_service) -> None:
        service = await book_service(patient, hours_ahead=72)

        response = await client.patch(
            f"/api/v1/services/{service.id}/patient-cancel",
            headers=people["patient"],
            json={"reason": "Travelling"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "Cancelled"
        assert body["cancel_reason"] == "Travelling"

    async def test_completed_service_is_403(self, client, people, patient, book_service) -> None:
        service = await book_service(patient, hours_ahead=72)
        await client.patch(f"/api/v1/services/{service.id}/complete", headers=people["admin"])

        response = await client.patch(
            f"/api/v1/services/{service.id}/patient-cancel", headers=people["patient"]
        )

        assert response.status_code == 403
        assert "Only scheduled appointments" in response.json()["detail"]

    async def test_other_patients_service_hidden(
        self, client, people, second_patient, book_service
    ) -> None:
        service = await book_service(second_patient)

        response = await client.get(f"/api/v1/services/{service.id}", headers=people["patient"])

        assert response.status_code == 403


class TestEncounterLifecycle:
    """A request is booked, completed, then gets a notice and feedback."""

    async def test_full_flow(self, client, people, patient, doctor, service_type) -> None:
        # Patient asks for an appointment
        response = await client.post(
            "/api/v1/service-requests",
            headers=people["patient"],
            json={
                "service_type_id": service_type.id,
                "preferred_date_1": "2025-07-14",
                "preferred_date_2": "2025-07-15",
                "preferred_time": "morning",
                "reason": "Persistent back pain after a fall",
            },
        )
        assert response.status_code == 201
        request = response.json()
        assert request["status"] == "pending"
        assert request["patient_id"] == patient.id

        # Reception approves and books it
        response = await client.patch(
            f"/api/v1/service-requests/{request['id']}/approve",
            headers=people["receptionist"],
        )
        assert response.json()["status"] == "approved"

        response = await client.post(
            "/api/v1/services",
            headers=people["receptionist"],
            json={
                "service_type": "Consultation",
                "doctor_id": doctor.id,
                "start_time": "2025-07-15T09:00:00Z",
                "end_time": "2025-07-15T10:00:00Z",
                "patient_id": patient.id,
            },
        )
        assert response.status_code == 201
        service = response.json()
        assert service["status"] == "Scheduled"
        assert len(service["participants"]) == 1
        participant_id = service["participants"][0]["id"]

        response = await client.patch(
            f"/api/v1/service-requests/{request['id']}/schedule",
            headers=people["receptionist"],
            json={"service_id": service["id"]},
        )
        assert response.json()["status"] == "scheduled"
        assert response.json()["service_id"] == service["id"]

        # The doctor sees the patient and closes the encounter
        response = await client.patch(
            f"/api/v1/services/{service['id']}/complete", headers=people["doctor"]
        )
        assert response.json()["status"] == "Completed"

        response = await client.post(
            "/api/v1/notices",
            headers=people["doctor"],
            json={
                "service_id": service["id"],
                "participant_id": participant_id,
                "issue_date": "2025-07-15T11:00:00Z",
                "reason_for_issuance": "Acute lower back strain",
                "fitness_status": "Unfit for work",
                "recommendations": "Avoid lifting for ten days",
            },
        )
        assert response.status_code == 201
        notice = response.json()
        assert notice["unique_notice_number"] == "NOTICE-202507-001"
        assert notice["participant_id"] == participant_id

        # The patient can read it and leave feedback
        response = await client.get("/api/v1/notices/mine", headers=people["patient"])
        assert [n["id"] for n in response.json()] == [notice["id"]]

        response = await client.get(
            "/api/v1/feedback/services-available", headers=people["patient"]
        )
        assert [s["id"] for s in response.json()] == [service["id"]]

        response = await client.post(
            "/api/v1/feedback",
            headers=people["patient"],
            json={
                "service_id": service["id"],
                "participant_id": participant_id,
                "target_type": "DOCTOR",
                "rating_score": 5,
                "comments": "Very thorough",
            },
        )
        assert response.status_code == 201
        feedback = response.json()
        assert feedback["link"] == {
            "kind": "linked",
            "service_id": service["id"],
            "participant_id": participant_id,
        }

        response = await client.post(
            "/api/v1/feedback",
            headers=people["patient"],
            json={
                "service_id": service["id"],
                "participant_id": participant_id,
                "target_type": "DOCTOR",
                "rating_score": 1,
            },
        )
        assert response.status_code == 409

        response = await client.get(
            f"/api/v1/feedback/doctor/{doctor.id}/rating", headers=people["doctor"]
        )
        assert response.json() == {
            "doctor_id": doctor.id,
            "average_rating": 5.0,
            "total_ratings": 1,
        }

        response = await client.get(
            "/api/v1/feedback/services-available", headers=people["patient"]
        )
        assert response.json() == []


class TestNoticeNumberPreview:
    async def test_next_number_for_current_month(self, client, people) -> None:
        now = utc_now()

        response = await client.get("/api/v1/notices/next-number", headers=people["doctor"])

        assert response.status_code == 200
        assert response.json()["unique_notice_number"] == (
            f"NOTICE-{now.year}{now.month:02d}-001"
        )

    async def test_patients_cannot_preview(self, client, people) -> None:
        response = await client.get("/api/v1/notices/next-number", headers=people["patient"])

        assert response.status_code == 403


class TestPsychologicalTestsApi:
    async def test_assign_and_submit(self, client, people, patient) -> None:
        response = await client.post(
            "/api/v1/test-templates",
            headers=people["doctor"],
            json={
                "name": "Sleep Quality",
                "questions": [
                    {"question": "Hours slept last night", "type": "SCALE", "min_value": 0, "max_value": 12},
                    {"question": "Any nightmares?", "type": "MULTIPLE_CHOICE", "options": ["Yes", "No"]},
                ],
            },
        )
        assert response.status_code == 201
        template = response.json()
        assert template["latest_version"] == 1

        response = await client.post(
            "/api/v1/tests/assign",
            headers=people["doctor"],
            json={"patient_id": patient.id, "template_id": template["id"]},
        )
        assert response.status_code == 201
        instance = response.json()
        assert instance["version"] == 1
        assert instance["is_submitted"] is False

        response = await client.put(
            f"/api/v1/tests/{instance['id']}/submit",
            headers=people["patient"],
            json={"responses": {"0": 7, "1": "No"}},
        )
        assert response.status_code == 200
        assert response.json()["is_submitted"] is True

        response = await client.put(
            f"/api/v1/tests/{instance['id']}/submit",
            headers=people["patient"],
            json={"responses": {"0": 5, "1": "Yes"}},
        )
        assert response.status_code == 409

    async def test_bad_question_rejected(self, client, people) -> None:
        response = await client.post(
            "/api/v1/test-templates",
            headers=people["admin"],
            json={
                "name": "Broken",
                "questions": [{"question": "Pick", "type": "MULTIPLE_CHOICE", "options": ["A"]}],
            },
        )

        assert response.status_code == 400


class TestServiceTypesApi:
    async def test_admin_creates_and_duplicate_conflicts(self, client, people) -> None:
        body = {"name": "Family Therapy", "duration_minutes": 90}

        created = await client.post("/api/v1/service-types", headers=people["admin"], json=body)
        duplicate = await client.post("/api/v1/service-types", headers=people["admin"], json=body)
        listed = await client.get("/api/v1/service-types", headers=people["patient"])

        assert created.status_code == 201
        assert duplicate.status_code == 409
        assert [t["name"] for t in listed.json()] == ["Family Therapy"]

    async def test_doctor_cannot_create(self, client, people) -> None:
        response = await client.post(
            "/api/v1/service-types",
            headers=people["doctor"],
            json={"name": "Yoga", "duration_minutes": 30},
        )

        assert response.status_code == 403


class TestArtifactPickers:
    async def test_doctor_listings(self, client, people, patient, book_service) -> None:
        service = await book_service(patient)
        await client.post(
            "/api/v1/notes",
            headers=people["doctor"],
            json={"patient_id": patient.id, "content": "Pre-visit call", "service_id": service.id},
        )

        notes = await client.get("/api/v1/notes/doctor/me", headers=people["doctor"])
        services = await client.get("/api/v1/notes/services", headers=people["doctor"])
        note_patients = await client.get("/api/v1/notes/patients", headers=people["doctor"])
        notice_patients = await client.get("/api/v1/notices/patients", headers=people["doctor"])
        tests = await client.get("/api/v1/tests/doctor/me", headers=people["doctor"])

        assert [n["content"] for n in notes.json()] == ["Pre-visit call"]
        assert [s["id"] for s in services.json()] == [service.id]
        assert [p["id"] for p in note_patients.json()] == [patient.id]
        assert [p["id"] for p in notice_patients.json()] == [patient.id]
        assert tests.json() == []

    async def test_patients_cannot_list_pickers(self, client, people) -> None:
        response = await client.get("/api/v1/notes/patients", headers=people["patient"])

        assert response.status_code == 403
