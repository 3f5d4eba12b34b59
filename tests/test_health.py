import pytest


@pytest.mark.anyio("asyncio")
async def test_health_check_returns_ok_status_and_version(client) -> None:
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["data"]["status"] == "ok"
    assert "version" in payload["data"]
    assert payload["data"]["version"]
