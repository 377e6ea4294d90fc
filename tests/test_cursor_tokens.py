from __future__ import annotations

import pytest

from memehub.db.dynamodb.errors import DdbValidation
from memehub.db.dynamodb.pagination import decode_next_token, encode_next_token
from memehub.services.token_crypto import seal, unseal


def test_cursor_hides_the_key_and_decodes_back():
    key = {"pk": "TYPE#MEME", "sk": "2026-01-01T00:00:00Z#meme_1"}
    token = encode_next_token(key)
    assert token and "TYPE#MEME" not in token
    assert decode_next_token(token) == key


def test_no_last_key_means_no_cursor():
    assert encode_next_token(None) is None
    assert decode_next_token(None) is None


@pytest.mark.parametrize("bad", ["garbage", "c1.", "c1.AAAA", "v1:a:b:c"])
def test_forged_cursors_are_rejected(bad):
    with pytest.raises(DdbValidation):
        decode_next_token(bad)


def test_tampered_token_does_not_unseal():
    token = seal("hello")
    flipped = token[:-2] + ("A" if token[-2] != "A" else "B") + token[-1]
    assert unseal(token) == "hello"
    assert unseal(flipped) is None
