#!/usr/bin/env python3
"""Tests for credential stores."""

import os
import stat

import pytest

from upbudget.core.credentials import (
    CredentialNotFound,
    CredentialStoreError,
    FileCredentialStore,
    GateFailed,
    GateUnavailable,
    InMemoryCredentialStore,
    mask_token,
)


class TestInMemoryCredentialStore:
    """Test the process-local store."""

    def test_missing_token(self):
        store = InMemoryCredentialStore()
        assert not store.exists()
        with pytest.raises(CredentialNotFound):
            store.retrieve()

    def test_store_retrieve_delete(self):
        store = InMemoryCredentialStore()
        store.store("  up:yeah:abc  ")
        assert store.exists()
        assert store.retrieve() == "up:yeah:abc"
        store.delete()
        assert not store.exists()
        # Deleting twice is not an error
        store.delete()

    def test_empty_token_rejected(self):
        with pytest.raises(CredentialStoreError):
            InMemoryCredentialStore().store("   ")

    def test_gate_passes(self):
        store = InMemoryCredentialStore("tok-123", gate=lambda: True)
        assert store.retrieve(use_gate=True) == "tok-123"

    def test_gate_rejects(self):
        store = InMemoryCredentialStore("tok-123", gate=lambda: False)
        with pytest.raises(GateFailed):
            store.retrieve(use_gate=True)
        # Ungated retrieval is unaffected
        assert store.retrieve() == "tok-123"

    def test_gate_unavailable(self):
        store = InMemoryCredentialStore("tok-123")
        with pytest.raises(GateUnavailable):
            store.retrieve(use_gate=True)


class TestFileCredentialStore:
    """Test the JSON file store."""

    def test_round_trip(self, temp_dir):
        path = temp_dir / "nested" / "credentials.json"
        store = FileCredentialStore(path)
        assert not store.exists()

        store.store("up:yeah:file-token")
        assert path.exists()
        assert store.exists()
        assert FileCredentialStore(path).retrieve() == "up:yeah:file-token"

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_file_is_owner_only(self, temp_dir):
        path = temp_dir / "credentials.json"
        FileCredentialStore(path).store("up:yeah:file-token")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_corrupt_file(self, temp_dir):
        path = temp_dir / "credentials.json"
        path.write_text("{not json")
        store = FileCredentialStore(path)
        with pytest.raises(CredentialStoreError):
            store.retrieve()
        assert not store.exists()

    def test_file_without_token(self, temp_dir):
        path = temp_dir / "credentials.json"
        path.write_text('{"other": 1}')
        with pytest.raises(CredentialNotFound):
            FileCredentialStore(path).retrieve()

    def test_delete(self, temp_dir):
        path = temp_dir / "credentials.json"
        store = FileCredentialStore(path)
        store.store("up:yeah:file-token")
        store.delete()
        assert not path.exists()
        store.delete()


class TestMaskToken:
    """Test token masking for logs."""

    def test_long_token(self):
        assert mask_token("up:yeah:secret") == "up:" + "*" * 11

    def test_short_token(self):
        assert mask_token("abc") == "***"
