import smtplib
import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.routers.rou_mail import router
from backend.configuration.database import get_mailsettings_db
from backend.dependencies.dep_auth import get_current_user
from backend.dependencies.dep_mail import get_mail_service
from backend.models.mod_auth import SessionUser, UserRole
from backend.models.mod_mail import DeliveryInfo, LogLevel
from backend.schemas.sch_mail import PASSWORD_MASK

app = FastAPI()
app.include_router(router)

ADMIN = SessionUser(id="admin1", email="admin@example.com", name="Admin", role=UserRole.ADMIN)
CLIENT = SessionUser(id="client1", email="client@example.com", name="Client", role=UserRole.CLIENT)

STORED_SETTING = {
    "id": "setting1",
    "host": "smtp.example.com",
    "port": 587,
    "secure": False,
    "username": "mailer",
    "password": "stored-secret",
    "from_name": "Mehmetcan PT",
    "from_email": "noreply@example.com",
    "is_active": True,
    "updated_at": "2026-10-01T08:00:00Z",
}

@pytest.fixture
def mock_db():
    db = MagicMock()
    db.query_items.return_value = [dict(STORED_SETTING)]
    return db

@pytest.fixture
def mock_mail_service():
    service = MagicMock()
    service.send_mail = AsyncMock()
    service.verify_connection = AsyncMock()
    return service

@pytest.fixture
def client(mock_db, mock_mail_service):
    app.dependency_overrides[get_mailsettings_db] = lambda: mock_db
    app.dependency_overrides[get_mail_service] = lambda: mock_mail_service
    app.dependency_overrides[get_current_user] = lambda: ADMIN
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def payload():
    return {
        "host": "ssl://smtp.example.com",
        "port": 465,
        "secure": True,
        "username": "mailer",
        "password": PASSWORD_MASK,
        "from_name": "Mehmetcan PT",
        "from_email": "noreply@example.com",
    }

class TestGetMailSettings:
    def test_masks_password(self, client):
        response = client.get("/admin/mail-settings")

        assert response.status_code == 200
        setting = response.json()["setting"]
        assert setting["host"] == "smtp.example.com"
        assert setting["password"] == PASSWORD_MASK

    def test_no_setting(self, client, mock_db):
        mock_db.query_items.return_value = []

        response = client.get("/admin/mail-settings")

        assert response.status_code == 200
        assert response.json() == {"setting": None}

    def test_client_forbidden(self, client):
        app.dependency_overrides[get_current_user] = lambda: CLIENT

        response = client.get("/admin/mail-settings")

        assert response.status_code == 403

class TestUpdateMailSettings:
    def test_save_without_test(self, client, mock_db, mock_mail_service, payload):
        response = client.put("/admin/mail-settings", json=payload)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["test_result"] is None
        stored = mock_db.create_item.call_args[1]["body"]
        assert stored["host"] == "smtp.example.com"
        assert stored["password"] == "stored-secret"
        mock_mail_service.verify_connection.assert_not_called()

    def test_save_and_test_success(self, client, mock_db, mock_mail_service, payload):
        payload["test"] = True

        response = client.put("/admin/mail-settings", json=payload)

        assert response.status_code == 200
        result = response.json()["test_result"]
        assert result["success"] is True
        assert result["message"] == "SMTP sunucusuna başarıyla bağlanıldı: smtp.example.com:465"
        assert result["tested_at"] is not None
        config = mock_mail_service.verify_connection.await_args[0][0]
        assert config.secure is True
        assert config.password == "stored-secret"
        mock_db.upsert_item.assert_called_once()

    def test_save_and_test_failure_still_saves(self, client, mock_db, mock_mail_service, payload):
        payload["test"] = True
        mock_mail_service.verify_connection.side_effect = smtplib.SMTPAuthenticationError(535, b"bad")

        response = client.put("/admin/mail-settings", json=payload)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["test_result"]["success"] is False
        assert body["test_result"]["message"].startswith("Kullanıcı adı veya şifre hatalı")
        mock_db.create_item.assert_called_once()
        mock_db.upsert_item.assert_not_called()

    def test_missing_required_fields(self, client, mock_db, payload):
        payload["host"] = "tls://"

        response = client.put("/admin/mail-settings", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "Host, port, gönderen adı ve e-posta zorunludur"
        mock_db.create_item.assert_not_called()

    @pytest.mark.parametrize("port", ["abc", "", None])
    def test_non_numeric_port_is_a_validation_error(self, client, mock_db, payload, port):
        payload["port"] = port

        response = client.put("/admin/mail-settings", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "Host, port, gönderen adı ve e-posta zorunludur"
        mock_db.create_item.assert_not_called()

    def test_string_port_is_stored_as_number(self, client, mock_db, payload):
        payload["port"] = "587"

        response = client.put("/admin/mail-settings", json=payload)

        assert response.status_code == 200
        assert mock_db.create_item.call_args[1]["body"]["port"] == 587

class TestSendTestMail:
    def test_success(self, client, mock_mail_service):
        mock_mail_service.send_mail.return_value = DeliveryInfo(
            message_id="<id@example.com>", accepted=["to@example.com"]
        )

        response = client.post("/admin/mail-settings/test", json={"email": "to@example.com"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Test e-postası to@example.com adresine başarıyla gönderildi."
        assert body["message_id"] == "<id@example.com>"
        mail = mock_mail_service.send_mail.await_args[0][0]
        assert mail.to == "to@example.com"
        assert mail.subject == "Test E-postası - SMTP Ayarları"
        log_kwargs = mock_mail_service.record_mail_log.call_args[1]
        assert log_kwargs["level"] == LogLevel.AUDIT
        assert log_kwargs["actor_id"] == "admin1"

    def test_rejected_recipient_warns(self, client, mock_mail_service):
        mock_mail_service.send_mail.return_value = DeliveryInfo(rejected=["to@example.com"])

        response = client.post("/admin/mail-settings/test", json={"email": "to@example.com"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["rejected"] == ["to@example.com"]
        assert body["warning"] == "E-posta SMTP sunucusuna gönderildi ancak bazı alıcılar reddedildi."
        assert mock_mail_service.record_mail_log.call_args[1]["level"] == LogLevel.WARN

    def test_nothing_accepted_warns(self, client, mock_mail_service):
        mock_mail_service.send_mail.return_value = DeliveryInfo()

        response = client.post("/admin/mail-settings/test", json={"email": "to@example.com"})

        assert response.json()["success"] is False
        assert response.json()["message"] == "Test e-postası gönderildi ancak alıcı kabul edilmedi."

    def test_invalid_recipient(self, client, mock_mail_service):
        response = client.post("/admin/mail-settings/test", json={"email": "nope"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Geçerli bir e-posta adresi giriniz"
        mock_mail_service.send_mail.assert_not_called()

    def test_not_configured(self, client, mock_db, mock_mail_service):
        mock_db.query_items.return_value = []

        response = client.post("/admin/mail-settings/test", json={"email": "to@example.com"})

        assert response.status_code == 400
        assert response.json()["detail"].startswith("SMTP ayarları yapılandırılmamış")
        mock_mail_service.send_mail.assert_not_called()

    def test_send_failure(self, client, mock_mail_service):
        mock_mail_service.send_mail.side_effect = smtplib.SMTPException("connection closed")

        response = client.post("/admin/mail-settings/test", json={"email": "to@example.com"})

        assert response.status_code == 500
        assert response.json()["detail"] == "E-posta gönderilirken hata oluştu: connection closed"
        log_kwargs = mock_mail_service.record_mail_log.call_args[1]
        assert log_kwargs["level"] == LogLevel.ERROR
        assert log_kwargs["context"]["error"]["name"] == "SMTPException"
