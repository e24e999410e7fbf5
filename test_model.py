import base64
import json
from types import SimpleNamespace

import pytest
import requests
from openai import OpenAI

from dgucoop_lib.model import (
    DEFAULT_MODEL,
    MEAL_SCHEMA,
    _safe_json_extract,
    build_openai_client,
    ocr_menu_image,
)

IMAGE_URL = "https://dgucoop.dongguk.edu/upload/menu_20251020.png"
IMAGE_BYTES = b'\x89PNG\r\n\x1a\nfake-image'

OCR_ANSWER = {
    "meals": [
        {
            "restaurant": "누리터식당",
            "day": "mon",
            "mealType": "lunch",
            "items": [{"name": "김치찌개", "price": 5000, "description": None}],
        }
    ]
}


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


def fake_client(content):
    completions = FakeCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def image_session(content_type='image/png'):
    response = requests.Response()
    response._content = IMAGE_BYTES
    response.status_code = 200
    response.headers['Content-Type'] = content_type
    response.url = IMAGE_URL
    return FakeSession(response)


def test_ocr_sends_image_and_schema():
    client, completions = fake_client(json.dumps(OCR_ANSWER, ensure_ascii=False))
    session = image_session()

    meals = ocr_menu_image(IMAGE_URL, client, model="gpt-4o", session=session, timeout=5)

    assert meals == OCR_ANSWER["meals"]
    assert session.calls[0] == (IMAGE_URL, {'timeout': 5})

    request = completions.calls[0]
    assert request["model"] == "gpt-4o"
    assert request["response_format"]["type"] == "json_schema"
    assert request["response_format"]["json_schema"]["strict"] is True
    assert request["response_format"]["json_schema"]["schema"] is MEAL_SCHEMA

    image_part = request["messages"][1]["content"][1]
    expected = "data:image/png;base64," + base64.b64encode(IMAGE_BYTES).decode('ascii')
    assert image_part == {"type": "image_url", "image_url": {"url": expected}}


def test_ocr_default_model_and_mime(monkeypatch):
    monkeypatch.delenv("OPENAI_MODEL", raising=False)
    client, completions = fake_client(json.dumps(OCR_ANSWER["meals"]))

    meals = ocr_menu_image(IMAGE_URL, client, session=image_session(content_type=''))

    assert len(meals) == 1
    assert completions.calls[0]["model"] == DEFAULT_MODEL
    url = completions.calls[0]["messages"][1]["content"][1]["image_url"]["url"]
    assert url.startswith("data:image/jpeg;base64,")


def test_ocr_without_json_returns_empty():
    client, _ = fake_client("죄송합니다, 이미지를 읽을 수 없습니다.")
    assert ocr_menu_image(IMAGE_URL, client, session=image_session()) == []


def test_ocr_image_download_error_propagates():
    response = requests.Response()
    response._content = b''
    response.status_code = 404
    response.url = IMAGE_URL
    client, completions = fake_client("{}")

    with pytest.raises(requests.HTTPError):
        ocr_menu_image(IMAGE_URL, client, session=FakeSession(response))
    assert completions.calls == []


def test_safe_json_extract():
    assert _safe_json_extract('{"meals": []}') == {"meals": []}
    assert _safe_json_extract('결과: {"meals": [1]} 끝') == {"meals": [1]}
    assert _safe_json_extract('list [1, 2] here') == [1, 2]
    assert _safe_json_extract('') is None
    assert _safe_json_extract('no json at all') is None


def test_build_openai_client(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        build_openai_client()

    assert isinstance(build_openai_client("sk-test"), OpenAI)


def test_ocr_closes_its_own_download_session(monkeypatch):
    created = []

    class ClosingSession(FakeSession):
        closed = False

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            self.closed = True

    def build_session():
        session = ClosingSession(image_session().response)
        created.append(session)
        return session

    monkeypatch.setattr('dgucoop_lib.model.requests.Session', build_session)
    client, _ = fake_client(json.dumps(OCR_ANSWER))

    assert ocr_menu_image(IMAGE_URL, client) == OCR_ANSWER["meals"]
    assert len(created) == 1
    assert created[0].closed
