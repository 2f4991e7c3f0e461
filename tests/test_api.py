"""
End-to-end tests for the HTTP API.

Requests go through the full application: middleware pipeline, exception
handlers, routes, service layer and the SQLite test database.
"""

from fastapi.testclient import TestClient

from shrink.api.endpoints import format_uptime, get_url_service
from shrink.core.setting import Settings
from shrink.main import create_app


def shorten(client, url):
    return client.post("/api/shorten", json={"url": url})


class TestShorten:

    def test_create_short_url(self, client):
        response = shorten(client, "https://example.com/some/long/path")

        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "b"
        assert data["short_url"] == "http://localhost:8080/b"

    def test_same_url_returns_same_code(self, client):
        first = shorten(client, "https://example.com").json()
        second = shorten(client, "https://example.com").json()

        assert first == second

    def test_different_urls_get_different_codes(self, client):
        first = shorten(client, "https://example.com/1").json()["code"]
        second = shorten(client, "https://example.com/2").json()["code"]

        assert first != second

    def test_invalid_json(self, client):
        response = client.post(
            "/api/shorten",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "invalid JSON body", "code": 400}

    def test_missing_url(self, client):
        response = client.post("/api/shorten", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "url is required", "code": 400}

    def test_wrong_scheme(self, client):
        response = shorten(client, "ftp://example.com")

        assert response.status_code == 400
        assert response.json() == {"error": "url must have http or https scheme", "code": 400}

    def test_url_too_long(self, client):
        response = shorten(client, "https://example.com/" + "a" * 2048)

        assert response.status_code == 400
        assert response.json() == {"error": "url exceeds maximum length", "code": 400}

    def test_url_without_host(self, client):
        response = shorten(client, "http://")

        assert response.status_code == 400
        assert response.json() == {"error": "invalid url", "code": 400}

    def test_get_not_allowed(self, client):
        response = client.get("/api/shorten")

        assert response.status_code == 405
        assert response.json()["code"] == 405


class TestRedirect:

    def test_redirects_to_original(self, client):
        code = shorten(client, "https://example.com/target").json()["code"]

        response = client.get(f"/{code}", follow_redirects=False)

        assert response.status_code == 301
        assert response.headers["location"] == "https://example.com/target"

    def test_unknown_code(self, client):
        response = client.get("/zzzzzz", follow_redirects=False)

        assert response.status_code == 404
        assert response.json() == {"error": "short url not found", "code": 404}

    def test_malformed_code(self, client):
        response = client.get("/favicon.ico", follow_redirects=False)

        assert response.status_code == 404
        assert response.json()["error"] == "short url not found"

    def test_unknown_path(self, client):
        response = client.get("/no/such/path")

        assert response.status_code == 404
        assert response.json()["code"] == 404


class TestStats:

    def test_url_stats(self, client):
        code = shorten(client, "https://example.com").json()["code"]

        response = client.get(f"/api/urls/{code}")

        assert response.status_code == 200
        data = response.json()
        assert data["code"] == code
        assert data["original_url"] == "https://example.com"
        assert data["clicks"] == 0
        assert data["created_at"]

    def test_url_stats_not_found(self, client):
        response = client.get("/api/urls/zzzzzz")

        assert response.status_code == 404
        assert response.json() == {"error": "short url not found", "code": 404}

    def test_global_stats(self, client):
        first = shorten(client, "https://a.example.com").json()["code"]
        shorten(client, "https://b.example.com")
        client.get(f"/{first}", follow_redirects=False)

        response = client.get("/api/stats")

        assert response.status_code == 200
        assert response.json() == {"total_urls": 2, "total_clicks": 1, "urls_today": 2}

    def test_global_stats_empty(self, client):
        assert client.get("/api/stats").json() == {"total_urls": 0, "total_clicks": 0, "urls_today": 0}

    def test_full_flow(self, client):
        code = shorten(client, "https://example.com/flow").json()["code"]

        client.get(f"/{code}", follow_redirects=False)

        assert client.get(f"/api/urls/{code}").json()["clicks"] == 1


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["uptime"].endswith("s")

    def test_format_uptime(self):
        assert format_uptime(45) == "45s"
        assert format_uptime(187) == "3m7s"
        assert format_uptime(7212) == "2h0m12s"


class TestPipeline:
    """Cross-cutting behavior every route gets from the middleware pipeline."""

    def test_request_id_on_every_response(self, client):
        assert client.get("/api/health").headers["X-Request-ID"]
        assert client.get("/zzzzzz").headers["X-Request-ID"]
        assert shorten(client, "").headers["X-Request-ID"]

    def test_request_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "my-trace"})

        assert response.headers["X-Request-ID"] == "my-trace"

    def test_preflight(self, client):
        response = client.options(
            "/api/shorten",
            headers={"Origin": "https://app.example.com", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Origin"] == "https://app.example.com"

    def test_cors_on_simple_request(self, client):
        response = client.get("/api/health", headers={"Origin": "https://app.example.com"})

        assert response.headers["Access-Control-Allow-Origin"] == "https://app.example.com"

    def test_rate_limit(self, reset_database):
        app = create_app(Settings(RATE_LIMIT=1, RATE_BURST=2))

        with TestClient(app) as limited:
            assert limited.get("/api/health").status_code == 200
            assert limited.get("/api/health").status_code == 200
            response = limited.get("/api/health")

        assert response.status_code == 429
        assert response.json() == {"error": "rate limit exceeded", "code": 429}
        assert response.headers["Retry-After"] == "1"

    def test_crash_in_handler_returns_500(self, reset_database):
        app = create_app()

        def broken_service():
            raise RuntimeError("service exploded")

        app.dependency_overrides[get_url_service] = broken_service

        with TestClient(app) as crashing:
            response = crashing.get("/api/stats")
            assert response.status_code == 500
            assert response.json() == {"error": "internal server error", "code": 500}

            assert crashing.get("/api/health").status_code == 200


class TestOpenAPI:

    def test_error_shape_is_documented(self, client):
        schema = client.get("/openapi.json").json()

        shorten_responses = schema["paths"]["/api/shorten"]["post"]["responses"]
        assert shorten_responses["400"]["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/ErrorResponse"
        }
        redirect_responses = schema["paths"]["/{code}"]["get"]["responses"]
        assert "404" in redirect_responses
        assert set(schema["components"]["schemas"]["ErrorResponse"]["properties"]) == {"error", "code"}
