"""
Tests for the government orientation loader (vote_alignment/services/orientation_loader.py).
"""

import httpx
import pytest

from vote_alignment.lib.exceptions import OrientationLoadError
from vote_alignment.services.orientation_loader import (
    OrientationLoader,
    is_government_bloc,
    is_guidance,
    parse_orientation_records,
)


class TestGovernmentBloc:
    @pytest.mark.parametrize("bloc", ["Governo", "GOVERNO", "Gov.", "gov.", "Líder do Governo", "LIDGOV"])
    def test_aliases(self, bloc):
        assert is_government_bloc(bloc)

    @pytest.mark.parametrize("bloc", ["PT", "Oposição", "Maioria", "", None])
    def test_other_blocs(self, bloc):
        assert not is_government_bloc(bloc)


class TestIsGuidance:
    def test_recommendations(self):
        assert is_guidance("Sim")
        assert is_guidance("Não")

    @pytest.mark.parametrize("value", ["Liberado", "liberado", " LIBERADO ", "", "  ", None])
    def test_no_guidance(self, value):
        assert not is_guidance(value)


class TestParseOrientationRecords:
    def test_government_votes_and_universe(self, sample_orientations):
        result = parse_orientation_records(2024, sample_orientations["dados"])

        assert result.government_votes == {
            "2024-01": "Sim",
            "2024-02": "Não",
            "2024-04": "Sim",
            "2024-05": "Não",
        }
        assert result.vote_event_ids == ["2024-01", "2024-02", "2024-04", "2024-05"]
        assert result.total == 4

    def test_keeps_every_raw_record_for_cache(self, sample_orientations):
        result = parse_orientation_records(2024, sample_orientations["dados"])

        assert len(result.records) == len(sample_orientations["dados"])
        assert {"vote_event_id": "2024-06", "bloc_code": "Oposição", "recommended_vote": "Não"} in result.records

    def test_vote_event_rows(self, sample_orientations):
        result = parse_orientation_records(2024, sample_orientations["dados"])

        rows = result.vote_event_rows(["2024-02", "2024-01"])

        assert [r["id"] for r in rows] == ["2024-02", "2024-01"]
        assert rows[0] == {
            "id": "2024-02",
            "date": "2024-03-02T15:00:00",
            "description": "Votacao 2024-02",
            "committee": "PLEN",
            "year": 2024,
        }

    def test_duplicate_government_entry_last_wins(self, make_orientation):
        records = [
            make_orientation("2024-01", "Governo", "Sim"),
            make_orientation("2024-01", "Governo", "Não"),
        ]

        result = parse_orientation_records(2024, records)

        assert result.government_votes == {"2024-01": "Não"}
        assert result.total == 1

    def test_records_without_id_ignored(self, make_orientation):
        records = [make_orientation("2024-01", "Governo", "Sim"), {"siglaBancada": "Governo"}, "junk"]

        result = parse_orientation_records(2024, records)

        assert result.vote_event_ids == ["2024-01"]
        assert len(result.records) == 1

    def test_universe_is_sorted_regardless_of_input_order(self, make_orientation):
        records = [
            make_orientation("2024-09", "Governo", "Sim"),
            make_orientation("2024-03", "Governo", "Sim"),
            make_orientation("2024-07", "Governo", "Sim"),
        ]

        result = parse_orientation_records(2024, records)

        assert result.vote_event_ids == ["2024-03", "2024-07", "2024-09"]


class TestOrientationLoader:
    @pytest.mark.asyncio
    async def test_fetch(self, open_data, sample_routes, sync_config, urls):
        server = open_data(sample_routes)
        async with server.client() as client:
            result = await OrientationLoader(client, sync_config).fetch(2024)

        assert result.total == 4
        assert server.requests == [urls.bulk(2024)]

    @pytest.mark.asyncio
    async def test_accepts_top_level_list(self, open_data, sample_orientations, sync_config, urls):
        server = open_data({urls.bulk(2024): sample_orientations["dados"]})
        async with server.client() as client:
            result = await OrientationLoader(client, sync_config).fetch(2024)

        assert result.total == 4

    @pytest.mark.asyncio
    async def test_http_error_raises(self, open_data, sync_config):
        server = open_data({})
        async with server.client() as client:
            with pytest.raises(OrientationLoadError) as exc_info:
                await OrientationLoader(client, sync_config).fetch(2024)

        assert exc_info.value.status_code == 404
        assert exc_info.value.year == 2024

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, open_data, sync_config, urls):
        server = open_data({urls.bulk(2024): httpx.Response(200, text="<html>not json</html>")})
        async with server.client() as client:
            with pytest.raises(OrientationLoadError):
                await OrientationLoader(client, sync_config).fetch(2024)

    @pytest.mark.asyncio
    async def test_missing_record_list_raises(self, open_data, sync_config, urls):
        server = open_data({urls.bulk(2024): {"dados": {"unexpected": True}}})
        async with server.client() as client:
            with pytest.raises(OrientationLoadError):
                await OrientationLoader(client, sync_config).fetch(2024)

    @pytest.mark.asyncio
    async def test_load_memoizes_per_year(self, open_data, sample_routes, sync_config, urls):
        server = open_data(sample_routes)
        async with server.client() as client:
            loader = OrientationLoader(client, sync_config)
            first = await loader.load(2024)
            second = await loader.load(2024)
            refreshed = await loader.load(2024, refresh=True)

        assert first is second
        assert refreshed is not first
        assert server.requests.count(urls.bulk(2024)) == 2
