"""
Tests for the postal code lookup endpoint and client.
"""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from checkout.cep import CepClient, CepLookupError, CepNotFoundError, get_cep_client


PAULISTA = {
    "cep": "01310-100",
    "logradouro": "Avenida Paulista",
    "bairro": "Bela Vista",
    "localidade": "São Paulo",
    "uf": "SP",
}


class StubCepService:
    """Records requests and answers with a canned payload."""

    def __init__(self, payload=None, error=None, status_code=200):
        self.payload = payload
        self.error = error
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error:
            raise self.error
        if isinstance(self.payload, str):
            return httpx.Response(self.status_code, text=self.payload)
        return httpx.Response(self.status_code, json=self.payload)


class TestCepEndpoint:
    """GET /api/cep/{cep}"""

    @pytest.fixture
    def make_client(self):
        from checkout.main import app

        def _make(service: StubCepService) -> TestClient:
            cep_client = CepClient("https://viacep.test/ws", transport=httpx.MockTransport(service))
            app.dependency_overrides[get_cep_client] = lambda: cep_client
            return TestClient(app)

        yield _make
        app.dependency_overrides.clear()

    def test_known_cep_returns_address(self, make_client):
        service = StubCepService(payload=PAULISTA)

        response = make_client(service).get("/api/cep/01310100")

        assert response.status_code == 200
        assert response.json() == PAULISTA
        assert str(service.requests[0].url) == "https://viacep.test/ws/01310100/json/"

    @pytest.mark.parametrize("marker", [True, "true"])
    def test_error_marker_returns_404(self, make_client, marker):
        service = StubCepService(payload={"erro": marker})

        response = make_client(service).get("/api/cep/12345678")

        assert response.status_code == 404
        assert response.json() == {"message": "CEP não encontrado"}

    @pytest.mark.parametrize(
        "cep",
        ["1234567", "123456789", "1234567a", "01310-10", "12345678%0A", "\u0661\u0662\u0663\u0664\u0665\u0666\u0667\u0668"],
    )
    def test_malformed_cep_returns_400_without_calling_service(self, make_client, cep):
        service = StubCepService(payload=PAULISTA)

        response = make_client(service).get(f"/api/cep/{cep}")

        assert response.status_code == 400
        assert response.json() == {"message": "CEP deve conter 8 dígitos numéricos"}
        assert service.requests == []

    def test_unreachable_service_returns_500(self, make_client):
        service = StubCepService(error=httpx.ConnectError("connection refused"))

        response = make_client(service).get("/api/cep/01310100")

        assert response.status_code == 500
        assert response.json() == {"message": "Erro ao buscar CEP"}

    def test_non_json_answer_returns_500(self, make_client):
        service = StubCepService(payload="<html>bad gateway</html>", status_code=502)

        response = make_client(service).get("/api/cep/01310100")

        assert response.status_code == 500
        assert response.json() == {"message": "Erro ao buscar CEP"}


class TestCepClient:
    """CepClient against a mock transport."""

    def _lookup(self, service: StubCepService, cep: str = "01310100"):
        async def run():
            client = CepClient("https://viacep.test/ws/", transport=httpx.MockTransport(service))
            try:
                return await client.lookup(cep)
            finally:
                await client.aclose()

        return asyncio.run(run())

    def test_trailing_slash_in_base_url(self):
        service = StubCepService(payload=PAULISTA)

        assert self._lookup(service) == PAULISTA
        assert service.requests[0].url.path == "/ws/01310100/json/"

    def test_not_found_is_a_lookup_error(self):
        with pytest.raises(CepNotFoundError):
            self._lookup(StubCepService(payload={"erro": True}))
        assert issubclass(CepNotFoundError, CepLookupError)

    def test_list_payload_rejected(self):
        with pytest.raises(CepLookupError):
            self._lookup(StubCepService(payload=["unexpected"]))
