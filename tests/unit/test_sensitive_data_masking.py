import pytest

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_email_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "detail": "login by ana@example.com failed"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "ana@example.com" not in result["detail"]
        assert "***MASKED***" in result["detail"]

    def test_password_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]

    def test_sensitive_keys_masked_regardless_of_value(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "shipping_address": "742 Evergreen Terrace"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["shipping_address"] == "***MASKED***"

    def test_non_sensitive_data_unchanged(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "order.placed", "order_id": "ORD-20260101-ABC123"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_id"] == "ORD-20260101-ABC123"
        assert result["event"] == "order.placed"
