"""Unit tests for profile normalization and storage."""

import json
import os

from spatialvault import config
from spatialvault.profile import ProfileStore, UserProfile


def test_takes_first_entries_and_upgrades_photo_scheme():
    profile = UserProfile.from_people_response({
        "names": [{"displayName": "Ada Lovelace"}, {"displayName": "Other"}],
        "emailAddresses": [{"value": "ada@example.com"}, {"value": "b@example.com"}],
        "photos": [{"url": "http://lh3.example/photo.jpg"}],
    })
    assert profile == UserProfile("Ada Lovelace", "ada@example.com", "https://lh3.example/photo.jpg")


def test_https_photo_is_untouched():
    profile = UserProfile.from_people_response({"photos": [{"url": "https://lh3.example/p.jpg"}]})
    assert profile.avatar_url == "https://lh3.example/p.jpg"


def test_missing_fields_become_empty():
    assert UserProfile.from_people_response({}) == UserProfile("", "", "")
    assert UserProfile.from_people_response({"names": [], "emailAddresses": [{}], "photos": None}) == UserProfile()


def test_name_placeholder_policy():
    profile = UserProfile.from_people_response({"emailAddresses": [{"value": "a@b.c"}]}, name_placeholder="User")
    assert profile.name == "User"
    assert profile.email == "a@b.c"


def test_store_round_trip(tmp_path):
    store = ProfileStore(str(tmp_path))
    store.save(UserProfile("Ada", "ada@example.com", "https://x/y.png"))

    with open(os.path.join(str(tmp_path), "profile.json")) as f:
        assert json.load(f) == {"name": "Ada", "email": "ada@example.com", "avatar": "https://x/y.png"}
    assert store.load() == UserProfile("Ada", "ada@example.com", "https://x/y.png")


def test_save_overwrites(tmp_path):
    store = ProfileStore(str(tmp_path))
    store.save(UserProfile("Old", "old@example.com", ""))
    store.save(UserProfile("New", "", ""))
    assert store.load() == UserProfile("New", "", "")


def test_guest_when_absent_or_corrupt(tmp_path):
    store = ProfileStore(str(tmp_path))
    assert store.load_or_guest() == config.GUEST_PROFILE

    with open(store.path, "w") as f:
        f.write("{broken")
    assert store.load() is None
    assert store.load_or_guest() == config.GUEST_PROFILE


def test_deeply_nested_profile_falls_back_to_guest(tmp_path):
    store = ProfileStore(str(tmp_path))
    with open(store.path, "w") as f:
        f.write("[" * 100000)

    assert store.load() is None
    assert store.load_or_guest() == config.GUEST_PROFILE


def test_guest_default_is_a_copy(tmp_path):
    guest = ProfileStore(str(tmp_path)).load_or_guest()
    guest["name"] = "changed"
    assert config.GUEST_PROFILE["name"] == "Guest"


def test_delete(tmp_path):
    store = ProfileStore(str(tmp_path))
    assert store.delete() is False
    store.save(UserProfile("Ada", "", ""))
    assert store.delete() is True
    assert not store.exists()
