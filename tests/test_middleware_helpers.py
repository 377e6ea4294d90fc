from __future__ import annotations

from memehub.middleware.cors import build_allowed_origins
from memehub.middleware.normalize_path import normalize_api_path


def test_allowed_origins_strip_paths_and_skip_garbage():
    origins = build_allowed_origins(
        frontend_url="https://memehub.example.com/app/",
        frontend_urls="https://admin.memehub.example.com, not-a-url, ,http://localhost:5173",
        include_local=False,
    )
    assert origins == [
        "http://localhost:5173",
        "https://admin.memehub.example.com",
        "https://memehub.example.com",
    ]


def test_local_dev_origins_are_included_by_default():
    origins = build_allowed_origins(frontend_url=None, frontend_urls=None)
    assert "http://localhost:3000" in origins
    assert "http://localhost:5173" in origins


def test_normalize_api_path():
    assert normalize_api_path("/api/images/my-memes/") == "/api/images/my-memes"
    assert normalize_api_path("/api/images/my-memes") == "/api/images/my-memes"
    assert normalize_api_path("/api/") == "/api/"
    assert normalize_api_path("/assets/memes/") == "/assets/memes/"
