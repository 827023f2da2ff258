"""Tests for Nominatim geocoding."""

from unittest.mock import MagicMock

import pytest
import requests

from conftest import make_response
from osmduck.collectors.geocoder import NominatimGeocoder
from osmduck.exceptions import GeocodingError


SEARCH_REPLY = [
    {
        "display_name": "Politechnika Warszawska, Plac Politechniki, Warszawa, Polska",
        "lat": "52.2206",
        "lon": "21.0100",
        "boundingbox": ["52.2190", "52.2222", "21.0080", "21.0120"],
        "osm_type": "way",
        "osm_id": 26172385,
        "class": "amenity",
        "type": "university",
    },
    {"display_name": "Plac Politechniki", "lat": "52.2201", "lon": "21.0111"},
]


def _geocoder(config, session):
    limiter = MagicMock()
    return NominatimGeocoder(rate_limiter=limiter, session=session, config=config)


def test_geocode_parses_candidates(config):
    session = MagicMock()
    session.get.return_value = make_response(200, SEARCH_REPLY)
    geocoder = _geocoder(config, session)

    results = geocoder.geocode("Plac Politechniki 1, Warszawa")

    assert len(results) == 2
    first = results[0]
    assert first.lat == 52.2206 and first.lon == 21.01
    assert first.bbox == [52.219, 52.2222, 21.008, 21.012]
    assert first.osm_type == "way" and first.osm_id == 26172385
    assert first.category == "amenity" and first.type == "university"
    assert results[1].bbox is None
    geocoder.rate_limiter.acquire.assert_called_once()


def test_geocode_request_parameters(config):
    session = MagicMock()
    session.get.return_value = make_response(200, [])
    geocoder = _geocoder(config, session)

    assert geocoder.geocode("Warszawa") == []

    url = session.get.call_args.args[0]
    kwargs = session.get.call_args.kwargs
    assert url == "https://nominatim.openstreetmap.org/search"
    assert kwargs["params"]["q"] == "Warszawa"
    assert kwargs["params"]["format"] == "json"
    assert kwargs["params"]["limit"] == "5"
    assert kwargs["headers"]["User-Agent"] == config.api.user_agent


def test_geocode_http_error_raises(config):
    session = MagicMock()
    session.get.return_value = make_response(503)
    geocoder = _geocoder(config, session)

    with pytest.raises(GeocodingError):
        geocoder.geocode("Warszawa")

    assert session.get.call_count == 1


def test_network_error_is_wrapped(config):
    session = MagicMock()
    session.get.side_effect = requests.exceptions.ConnectTimeout("timed out")
    geocoder = _geocoder(config, session)

    with pytest.raises(GeocodingError):
        geocoder.geocode("Warszawa")


def test_reverse_geocode(config):
    session = MagicMock()
    session.get.return_value = make_response(200, {
        "display_name": "Plac Politechniki 1, Warszawa",
        "lat": "52.2206",
        "lon": "21.0100",
        "address": {"city": "Warszawa", "road": "Plac Politechniki"},
    })
    geocoder = _geocoder(config, session)

    result = geocoder.reverse(52.2206, 21.01)

    assert result.display_name == "Plac Politechniki 1, Warszawa"
    assert result.address["city"] == "Warszawa"
    assert session.get.call_args.args[0].endswith("/reverse")


def test_reverse_geocode_not_found(config):
    session = MagicMock()
    session.get.return_value = make_response(404)
    geocoder = _geocoder(config, session)

    assert geocoder.reverse(0.0, 0.0) is None


def test_reverse_geocode_error_payload(config):
    session = MagicMock()
    session.get.return_value = make_response(200, {"error": "Unable to geocode"})
    geocoder = _geocoder(config, session)

    assert geocoder.reverse(0.0, 0.0) is None


def test_geocode_invalid_json_raises(config):
    broken = make_response(200)
    broken.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    session = MagicMock()
    session.get.return_value = broken
    geocoder = _geocoder(config, session)

    with pytest.raises(GeocodingError, match="invalid JSON"):
        geocoder.geocode("Warszawa")


def test_geocode_malformed_candidate_raises(config):
    session = MagicMock()
    session.get.return_value = make_response(200, [{"display_name": "Nowhere"}])
    geocoder = _geocoder(config, session)

    with pytest.raises(GeocodingError, match="malformed"):
        geocoder.geocode("Nowhere")


def test_geocode_non_list_reply_raises(config):
    session = MagicMock()
    session.get.return_value = make_response(200, {"error": "rate limited"})
    geocoder = _geocoder(config, session)

    with pytest.raises(GeocodingError, match="unexpected JSON"):
        geocoder.geocode("Warszawa")


def test_reverse_geocode_invalid_json_raises(config):
    broken = make_response(200)
    broken.json.side_effect = ValueError("Expecting value")
    session = MagicMock()
    session.get.return_value = broken
    geocoder = _geocoder(config, session)

    with pytest.raises(GeocodingError):
        geocoder.reverse(52.2, 21.0)
