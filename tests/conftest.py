import os

import httpx
import pytest

os.environ.setdefault("LOG_DIR", os.path.join(os.path.dirname(__file__), ".logs"))
os.environ.setdefault("ENABLE_CLOUDWATCH", "false")

from moe.word_store import JsonWordStore  # noqa: E402


CAT_ENTRY = [{
    "word": "Cat",
    "phonetic": "/kæt/",
    "phonetics": [
        {"text": "/kæt/", "audio": ""},
        {"text": "/kæt/", "audio": "https://api.dictionaryapi.dev/media/pronunciations/en/cat-us.mp3"},
    ],
    "meanings": [{
        "partOfSpeech": "noun",
        "definitions": [
            {"definition": "An animal of the family Felidae.", "synonyms": [], "antonyms": []},
            {"definition": "A person, especially a man.", "example": "He's a cool cat."},
        ],
        "synonyms": ["feline", "kitty"],
    }],
}]


def mock_http_client(handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler(request)``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def dictionary_handler(entries):
    """Answer dictionary lookups from a {word: payload} map; unknown words get a 404."""
    def handler(request: httpx.Request) -> httpx.Response:
        word = request.url.path.rsplit("/", 1)[-1]
        if word in entries:
            return httpx.Response(200, json=entries[word])
        return httpx.Response(404, json={"title": "No Definitions Found"})
    return handler


def unreachable_handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network is unreachable", request=request)


def groq_reply(content: str, status_code: int = 200, headers=None):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code,
            json={"choices": [{"message": {"role": "assistant", "content": content}}]},
            headers=headers or {},
        )
    return handler


@pytest.fixture
def json_store(tmp_path):
    return JsonWordStore(str(tmp_path / "words_store.json"))
