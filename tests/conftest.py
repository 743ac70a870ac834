"""
Pytest fixtures for the vote alignment sync tests.

Provides mock and in-memory Supabase clients, an httpx transport serving the
open-data endpoints, and sample payloads.
"""

from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import httpx
import pytest

from vote_alignment.config import SyncConfig
from vote_alignment.services.orientation_loader import clear_loaded_orientations

API_BASE = "https://api.test/api/v2"
BULK_BASE = "https://bulk.test/arquivos"


# =============================================================================
# Mock Supabase Client Fixtures
# =============================================================================

@pytest.fixture
def mock_supabase():
    """Create a mock Supabase client."""
    client = MagicMock()

    table_mock = MagicMock()
    table_mock.upsert.return_value.execute.return_value = MagicMock(data=[])
    table_mock.select.return_value.eq.return_value.order.return_value.order.return_value.range.return_value.execute.return_value = MagicMock(data=[])

    client.table.return_value = table_mock
    return client


class _Query:
    """Just enough of the PostgREST query builder for the gateway's reads and writes."""

    def __init__(self, store: "InMemorySupabase", table: str):
        self.store = store
        self.table = table
        self.filters: List[tuple] = []
        self.orders: List[tuple] = []
        self.window: Optional[tuple] = None
        self.pending_upsert: Optional[tuple] = None

    def select(self, *_columns):
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def range(self, start, end):
        self.window = (start, end)
        return self

    def upsert(self, rows, on_conflict=""):
        self.pending_upsert = (rows, on_conflict.split(","))
        return self

    def execute(self):
        if self.pending_upsert is not None:
            rows, keys = self.pending_upsert
            self.store.upsert_calls.append((self.table, list(rows)))
            if self.store.fail_tables.get(self.table):
                raise Exception(f"upsert into {self.table} rejected")
            table = self.store.tables.setdefault(self.table, {})
            for row in rows:
                key = tuple(row.get(k) for k in keys)
                table[key] = {**table.get(key, {}), **row}
            return MagicMock(data=list(rows))

        rows = [
            dict(row) for row in self.store.tables.get(self.table, {}).values()
            if all(row.get(col) == value for col, value in self.filters)
        ]
        for column, desc in reversed(self.orders):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        if self.window:
            start, end = self.window
            rows = rows[start:end + 1]
        return MagicMock(data=rows)


class InMemorySupabase:
    """Supabase stand-in that keeps upserted rows per table."""

    def __init__(self):
        self.tables: Dict[str, Dict[tuple, Dict[str, Any]]] = {}
        self.upsert_calls: List[tuple] = []
        self.fail_tables: Dict[str, bool] = {}

    def table(self, name: str) -> _Query:
        return _Query(self, name)

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return list(self.tables.get(name, {}).values())


@pytest.fixture
def memory_supabase():
    """In-memory Supabase client."""
    return InMemorySupabase()


# =============================================================================
# Configuration and HTTP Fixtures
# =============================================================================

@pytest.fixture
def sync_config():
    """Sync config pointing at test hosts, with no waits."""
    return SyncConfig(
        api_base=API_BASE,
        bulk_base=BULK_BASE,
        request_delay=0,
        rate_limit_backoff=0,
        upsert_chunk_size=200,
        default_batch_size=2,
    )


@pytest.fixture(autouse=True)
def reset_orientation_memo():
    """Every test starts without memoized orientation datasets."""
    clear_loaded_orientations()
    yield
    clear_loaded_orientations()


def bulk_url(year: int) -> str:
    return f"{BULK_BASE}/votacoesOrientacoes/json/votacoesOrientacoes-{year}.json"


def roster_url(vote_event_id: str) -> str:
    return f"{API_BASE}/votacoes/{vote_event_id}/votos"


class OpenDataServer:
    """Routes requests to canned responses and records every request URL.

    A route value may be a dict/list (JSON 200), an int (bare status), an
    httpx.Response, or a list of those consumed one per request.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes: Dict[str, Any] = dict(routes or {})
        self.requests: List[str] = []

    def _respond(self, value: Any) -> httpx.Response:
        if isinstance(value, httpx.Response):
            return value
        if isinstance(value, int):
            return httpx.Response(value)
        return httpx.Response(200, json=value)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        value = self.routes.get(url, 404)
        if callable(value):
            return value(request)
        if isinstance(value, tuple):
            queue = list(value)
            if not queue:
                return httpx.Response(404)
            head, rest = queue[0], tuple(queue[1:]) or (queue[0],)
            self.routes[url] = rest
            return self._respond(head)
        return self._respond(value)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def open_data():
    """Factory: open_data(routes) -> OpenDataServer."""
    return OpenDataServer


# =============================================================================
# Sample Data Fixtures
# =============================================================================

def orientation(vote_event_id: str, bloc: str, vote: str, **extra) -> Dict[str, Any]:
    record = {
        "idVotacao": vote_event_id,
        "siglaBancada": bloc,
        "orientacao": vote,
        "siglaOrgao": "PLEN",
        "descricao": f"Votacao {vote_event_id}",
        "dataHoraVotacao": f"2024-03-{int(vote_event_id[-2:]):02d}T15:00:00",
    }
    record.update(extra)
    return record


def roster_vote(legislator_id: int, vote: str, name: str = None, party: str = "PT", state: str = "SP"):
    return {
        "deputado_": {
            "id": legislator_id,
            "nome": name or f"Deputado {legislator_id}",
            "siglaPartido": party,
            "siglaUf": state,
            "urlFoto": f"https://www.camara.leg.br/fotos/{legislator_id}.jpg",
        },
        "tipoVoto": vote,
    }


@pytest.fixture
def sample_orientations():
    """Bulk orientation payload: four government-guided vote events plus noise."""
    return {
        "dados": [
            orientation("2024-01", "Governo", "Sim"),
            orientation("2024-01", "PT", "Sim"),
            orientation("2024-02", "GOV.", "Não"),
            orientation("2024-02", "PL", "Sim"),
            orientation("2024-03", "Governo", "Liberado"),
            orientation("2024-04", "Líder do Governo", "Sim"),
            orientation("2024-05", "governo", "Não"),
            orientation("2024-06", "Oposição", "Não"),
        ]
    }


@pytest.fixture
def sample_rosters():
    """Rosters for the guided vote events in sample_orientations."""
    return {
        "2024-01": {"dados": [
            roster_vote(1, "Sim"),
            roster_vote(2, "Não", party="PL", state="RJ"),
            roster_vote(3, "Abstenção"),
        ]},
        "2024-02": {"dados": [
            roster_vote(1, "Não"),
            roster_vote(2, "Não", party="PL", state="RJ"),
        ]},
        "2024-04": {"dados": [
            roster_vote(1, "Sim"),
            roster_vote(2, "Não", party="PL", state="RJ"),
            roster_vote(3, "Sim"),
        ]},
        "2024-05": {"dados": [
            roster_vote(1, "Não"),
            roster_vote(2, "Obstrução", party="PL", state="RJ"),
            roster_vote(3, "Sim"),
        ]},
    }


@pytest.fixture
def sample_routes(sample_orientations, sample_rosters):
    """URL -> payload map serving the sample year 2024."""
    routes: Dict[str, Any] = {bulk_url(2024): sample_orientations}
    for vote_event_id, payload in sample_rosters.items():
        routes[roster_url(vote_event_id)] = payload
    return routes


@pytest.fixture
def urls():
    """Endpoint URL builders for the test hosts."""
    class Urls:
        bulk = staticmethod(bulk_url)
        roster = staticmethod(roster_url)
    return Urls


@pytest.fixture
def make_orientation():
    return orientation


@pytest.fixture
def make_roster_vote():
    return roster_vote
