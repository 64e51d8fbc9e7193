"""Unit tests for HTTP request -> action name mapping."""

import pytest

from src.modules.authz.action_extractor import (
    UNKNOWN_ACTION,
    extract_action,
    extract_resource_id,
    is_public_action,
    singularize,
)

RENTAL_ID = "123e4567-e89b-12d3-a456-426614174000"


class TestCrudActions:
    @pytest.mark.parametrize(
        "method, path, expected",
        [
            ("GET", "/api/v1/locacoes", "locacao:list"),
            ("GET", f"/api/v1/locacoes/{RENTAL_ID}", "locacao:view"),
            ("GET", "/api/v1/locacoes/42", "locacao:view"),
            ("POST", "/api/v1/locacoes", "locacao:create"),
            ("PUT", f"/api/v1/locacoes/{RENTAL_ID}", "locacao:update"),
            ("PATCH", f"/api/v1/locacoes/{RENTAL_ID}", "locacao:update"),
            ("DELETE", f"/api/v1/jetskis/{RENTAL_ID}", "jetski:delete"),
            ("OPTIONS", "/api/v1/locacoes", "locacao:options"),
            ("GET", "/v1/modelos", "modelo:list"),
        ],
    )
    def test_method_maps_to_verb(self, method, path, expected):
        assert extract_action(method, path) == expected

    def test_query_string_is_ignored(self):
        assert extract_action("GET", "/api/v1/locacoes?status=ATIVA&page=2") == "locacao:list"

    def test_trailing_slash_is_ignored(self):
        assert extract_action("GET", "/api/v1/locacoes/") == "locacao:list"

    def test_lowercase_method(self):
        assert extract_action("post", "/api/v1/clientes") == "cliente:create"


class TestSubActions:
    @pytest.mark.parametrize(
        "path, expected",
        [
            (f"/api/v1/locacoes/{RENTAL_ID}/checkin", "locacao:checkin"),
            (f"/api/v1/locacoes/{RENTAL_ID}/checkout", "locacao:checkout"),
            (f"/api/v1/locacoes/{RENTAL_ID}/desconto", "locacao:desconto"),
            ("/api/v1/abastecimentos/registrar", "abastecimento:registrar"),
            (f"/api/v1/fotos/{RENTAL_ID}/upload", "foto:upload"),
            ("/api/v1/fechamentos/diario", "fechamento:diario"),
            ("/api/v1/fechamentos/mensal", "fechamento:mensal"),
            (f"/api/v1/reservas/{RENTAL_ID}/confirmar-sinal", "reserva:confirmar-sinal"),
            (f"/api/v1/approvals/{RENTAL_ID}/approve", "approval:approve"),
        ],
    )
    def test_known_trailing_segment_is_the_action(self, path, expected):
        assert extract_action("POST", path) == expected


class TestNestedTenantResources:
    def test_nested_resource_wins_over_tenants(self):
        tenant = "aaaaaaaa-0000-0000-0000-00000000000a"
        assert extract_action("POST", f"/api/v1/tenants/{tenant}/members") == "member:create"
        assert extract_action("GET", f"/api/v1/tenants/{tenant}/members") == "member:list"
        assert (
            extract_action("DELETE", f"/api/v1/tenants/{tenant}/members/{RENTAL_ID}")
            == "member:delete"
        )

    def test_user_tenants_is_a_user_list(self):
        assert extract_action("GET", "/api/v1/user/tenants") == "user:list"


class TestUnknown:
    @pytest.mark.parametrize("path", ["/health", "/", "/api/docs"])
    def test_paths_outside_api_are_unknown(self, path):
        assert extract_action("GET", path) == UNKNOWN_ACTION


class TestSingularize:
    @pytest.mark.parametrize(
        "plural, singular",
        [
            ("locacoes", "locacao"),
            ("capitaes", "capitao"),
            ("materiais", "material"),
            ("papeis", "papel"),
            ("itens", "item"),
            ("vendedores", "vendedor"),
            ("jetskis", "jetski"),
            ("clientes", "cliente"),
            ("user", "user"),
            ("auth-tests", "auth-test"),
            ("ordens-servicos", "ordem-servico"),
        ],
    )
    def test_singularize(self, plural, singular):
        assert singularize(plural) == singular


class TestResourceId:
    def test_route_parameter_takes_precedence(self):
        assert extract_resource_id("/api/v1/locacoes/x", {"locacao_id": "abc"}) == "abc"

    def test_falls_back_to_uuid_in_path(self):
        assert extract_resource_id(f"/api/v1/locacoes/{RENTAL_ID}/checkin") == RENTAL_ID

    def test_no_identifier(self):
        assert extract_resource_id("/api/v1/locacoes") is None


class TestPublicActions:
    @pytest.mark.parametrize("action", ["health:list", "metrics:view", "actuator:list"])
    def test_public(self, action):
        assert is_public_action(action) is True

    def test_business_action_is_not_public(self):
        assert is_public_action("locacao:create") is False
