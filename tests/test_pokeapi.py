import pytest

from conftest import BASE, FIRE_MEMBERS, SPRITES, TOTAL_POKEMON
from pokeapi import (
    Category,
    EntityRef,
    FetchError,
    NotFoundError,
    extract_id_from_url,
    sprite_url,
)


class TestFetchPage:
    def test_first_page_is_ids_one_to_twenty(self, client):
        refs = client.fetch_page(0, 20)
        assert [r.id for r in refs] == list(range(1, 21))
        assert refs[0].name == "bulbasaur"

    @pytest.mark.parametrize("cursor,page_size", [(0, 1), (0, 20), (20, 20), (40, 20), (44, 3), (45, 10), (100, 5)])
    def test_slice_length_is_min_of_page_and_remaining(self, client, cursor, page_size):
        refs = client.fetch_page(cursor, page_size)
        remaining = max(0, TOTAL_POKEMON - cursor)
        assert len(refs) == min(page_size, remaining)
        assert [r.id for r in refs] == list(range(cursor + 1, cursor + 1 + len(refs)))

    def test_category_returns_full_membership_ignoring_cursor(self, client):
        for cursor, size in [(0, 20), (40, 5), (500, 1)]:
            refs = client.fetch_page(cursor, size, Category.FIRE)
            assert [r.id for r in refs] == FIRE_MEMBERS

    def test_category_request_is_unpaged(self, client, session):
        client.fetch_page(60, 20, Category.FIRE)
        assert session.calls == [f"{BASE}/type/fire"]

    def test_invalid_page_request(self, client):
        with pytest.raises(ValueError):
            client.fetch_page(-1, 20)
        with pytest.raises(ValueError):
            client.fetch_page(0, 0)

    def test_server_error_is_fetch_error(self, client, session):
        session.add(f"{BASE}/type/water", {"detail": "boom"}, status_code=500)
        with pytest.raises(FetchError) as excinfo:
            client.fetch_page(0, 20, Category.WATER)
        assert excinfo.value.status_code == 500
        assert not isinstance(excinfo.value, NotFoundError)

    def test_network_error_is_fetch_error(self, client, session):
        session.failing.add(f"{BASE}/pokemon")
        with pytest.raises(FetchError):
            client.fetch_page(0, 20)

    def test_invalid_json_is_fetch_error(self, client, session):
        session.add(f"{BASE}/type/ice", text="<html>")
        with pytest.raises(FetchError):
            client.fetch_page(0, 20, Category.ICE)


class TestEntityDetail:
    def test_detail_fields(self, client):
        d = client.get_entity(1)
        assert d.id == 1
        assert d.name == "bulbasaur"
        assert d.types == ("grass", "poison")
        assert d.image_url == f"{SPRITES}/1.png"

    def test_units(self, client):
        d = client.get_entity(25)
        assert d.height_m == pytest.approx(0.4)
        assert d.weight_kg == pytest.approx(6.0)

    def test_unknown_id_is_not_found(self, client):
        with pytest.raises(NotFoundError) as excinfo:
            client.get_entity(99999)
        assert excinfo.value.status_code == 404

    def test_malformed_payload_is_fetch_error(self, client, session):
        session.add(f"{BASE}/pokemon/7", {"name": "squirtle"})
        with pytest.raises(FetchError):
            client.get_entity(7)

    def test_species_url_comes_from_payload(self, client):
        assert client.get_entity(745).species_url == f"{BASE}/pokemon-species/745/"

    def test_species_url_for_form_name(self, client, session):
        assert client.get_species_url("lycanroc-midday") == f"{BASE}/pokemon-species/745/"
        assert session.calls == [f"{BASE}/pokemon/lycanroc-midday"]

    def test_species_url_missing_is_fetch_error(self, client, session):
        session.add(f"{BASE}/pokemon/missing-species", {"id": 9, "name": "missing-species", "species": "x"})
        with pytest.raises(FetchError):
            client.get_species_url("missing-species")

    def test_species_url_unknown_name_is_not_found(self, client):
        with pytest.raises(NotFoundError):
            client.get_species_url("missingno")


class TestModels:
    def test_sixteen_categories(self):
        assert len(Category) == 16
        assert Category("fire") is Category.FIRE
        assert Category.NORMAL in list(Category)

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            Category("cosmic")

    def test_id_from_url(self):
        assert extract_id_from_url("https://pokeapi.co/api/v2/pokemon/132/") == 132
        assert EntityRef("ditto", "https://pokeapi.co/api/v2/pokemon/132/").id == 132

    @pytest.mark.parametrize("url", ["", "https://pokeapi.co/api/v2/pokemon/132", "https://x/pokemon/0/", "https://x/pokemon/abc/"])
    def test_bad_urls_rejected(self, url):
        with pytest.raises(ValueError):
            extract_id_from_url(url)

    def test_sprite_url(self):
        assert sprite_url(25, "https://img.test/") == "https://img.test/25.png"
