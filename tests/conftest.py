import fitz
import pytest


_NO_JSON = object()


class FakeResponse:
    """Stand-in for `requests.Response` with the attributes the client reads."""

    def __init__(self, status_code=200, json_data=_NO_JSON):
        self.status_code = status_code
        self._json_data = json_data

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json_data is _NO_JSON:
            raise ValueError("No JSON body")
        return self._json_data


class FakePost:
    """Records `requests.post` calls and replays queued responses or exceptions."""

    def __init__(self):
        self.calls = []
        self.responses = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def __call__(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_post(monkeypatch):
    fake = FakePost()
    monkeypatch.setattr("arquia.llm.client.requests.post", fake)
    return fake


@pytest.fixture
def gemini_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    return "test-key"


@pytest.fixture
def no_gemini_key(monkeypatch, tmp_path):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)


def make_pdf(page_count):
    """Build an in-memory PDF whose page N is 100 + 50 * N points wide."""
    doc = fitz.open()
    for index in range(page_count):
        page = doc.new_page(width=100 + 50 * (index + 1), height=120)
        page.insert_text((10, 60), f"Planta {index + 1}")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_bytes():
    return make_pdf(3)


@pytest.fixture
def pdf_factory():
    return make_pdf
