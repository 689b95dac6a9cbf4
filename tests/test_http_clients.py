import pytest
import requests

from jobs.models import JobStatus, OptimizationJob
from jobs.notifier import WebhookNotifier
from routing.geocoding import GEOCODE_URL, GeoPoint, GoogleGeocoder
from routing.osrm_client import OSRMClient, OSRMError


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if self.payload is None:
            raise ValueError("no JSON body")
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Stands in for requests.Session, replaying canned responses."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append(("GET", url, params, timeout))
        if self.error:
            raise self.error
        return self.response

    def post(self, url, json=None, timeout=None):
        self.calls.append(("POST", url, json, timeout))
        if self.error:
            raise self.error
        return self.response


# --- OSRM ---

def test_osrm_distance_parses_first_route():
    session = FakeSession(FakeResponse({
        "code": "Ok",
        "routes": [{"distance": 1234.5, "duration": 300.0}, {"distance": 9999, "duration": 999}],
    }))
    client = OSRMClient(base_url="http://osrm.local/", session=session)

    meters = client.distance((40.0, -74.0), (40.1, -74.1))

    assert meters == 1234.5
    method, url, params, timeout = session.calls[0]
    # OSRM wants lon,lat
    assert url == "http://osrm.local/route/v1/driving/-74.0,40.0;-74.1,40.1"
    assert params == {"overview": "false"}
    assert timeout == 5


def test_osrm_error_code_raises():
    session = FakeSession(FakeResponse({"code": "NoRoute", "message": "Impossible route"}))
    client = OSRMClient(base_url="http://osrm.local", session=session)

    with pytest.raises(OSRMError, match="Impossible route"):
        client.compute_route([(40.0, -74.0), (40.1, -74.1)])


def test_osrm_network_error_raises():
    client = OSRMClient(base_url="http://osrm.local", session=FakeSession(error=requests.ConnectionError("down")))

    with pytest.raises(OSRMError):
        client.distance((40.0, -74.0), (40.1, -74.1))


def test_osrm_requires_base_url(monkeypatch):
    monkeypatch.delenv("OSRM_BASE_URL", raising=False)

    with pytest.raises(ValueError):
        OSRMClient()


# --- Geocoding ---

def test_geocoder_returns_first_result_and_caches():
    session = FakeSession(FakeResponse({
        "status": "OK",
        "results": [{"geometry": {"location": {"lat": 40.75, "lng": -73.98}}}],
    }))
    geocoder = GoogleGeocoder(api_key="test-key", session=session)

    first = geocoder.geocode("  350 Fifth Ave ")
    second = geocoder.geocode("350 fifth   ave")

    assert first == GeoPoint(lat=40.75, lng=-73.98)
    assert second == first
    assert first.to_osrm_format() == "-73.98,40.75"
    # 1. only one HTTP call thanks to the normalized cache key
    assert len(session.calls) == 1
    assert session.calls[0][1] == GEOCODE_URL
    assert session.calls[0][2]["key"] == "test-key"


def test_geocoder_returns_none_on_failures():
    empty = GoogleGeocoder(api_key="k", session=FakeSession(FakeResponse({"status": "ZERO_RESULTS", "results": []})))
    broken = GoogleGeocoder(api_key="k", session=FakeSession(error=requests.Timeout("slow")))

    assert empty.geocode("nowhere") is None
    assert broken.geocode("anywhere") is None
    assert empty.geocode("   ") is None


def test_geocoder_requires_api_key(monkeypatch):
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)

    with pytest.raises(ValueError):
        GoogleGeocoder()


# --- Webhook ---

@pytest.fixture
def finished_job(ride_day):
    job = OptimizationJob.new_for_date(ride_day.date(), callback_url="https://hooks.example.com/done")
    job.status = JobStatus.COMPLETED
    job.batch_id = "MEDICAL_20260302_090000_0badf00d"
    job.started_at = ride_day
    job.completed_at = ride_day
    return job


def test_webhook_posts_camel_case_payload(finished_job):
    session = FakeSession(FakeResponse(status_code=204))
    notifier = WebhookNotifier(session=session, timeout=2)

    assert notifier.notify(finished_job) is True

    method, url, payload, timeout = session.calls[0]
    assert (method, url, timeout) == ("POST", "https://hooks.example.com/done", 2)
    assert payload == {
        "jobId": finished_job.id,
        "status": "COMPLETED",
        "batchId": "MEDICAL_20260302_090000_0badf00d",
        "error": None,
        "submittedAt": finished_job.submitted_at.isoformat(),
        "startedAt": "2026-03-02T09:00:00",
        "completedAt": "2026-03-02T09:00:00",
    }


@pytest.mark.parametrize("session", [
    FakeSession(error=requests.ConnectionError("refused")),
    FakeSession(FakeResponse(status_code=500)),
])
def test_webhook_failures_are_swallowed(finished_job, session):
    notifier = WebhookNotifier(session=session)

    assert notifier.notify(finished_job) is False
    # exactly one attempt, no retry, job untouched
    assert len(session.calls) == 1
    assert finished_job.status == JobStatus.COMPLETED


def test_webhook_skipped_without_callback(finished_job):
    finished_job.callback_url = None
    session = FakeSession(FakeResponse())

    assert WebhookNotifier(session=session).notify(finished_job) is False
    assert session.calls == []
