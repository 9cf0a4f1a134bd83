"""Tests for the registry adapters."""

import json

import pytest
import requests

from shipyard.adapters.registry import CargoRegistry, SparseIndex
from shipyard.exceptions import PublishFailure
from shipyard.models.workspace import Package

from tests.conftest import FakeRunner


class FakeResponse:

    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"HTTP {self.status_code}")


class FakeSession:

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.response


@pytest.mark.parametrize("name,path", [
    ("a", "1/a"),
    ("ab", "2/ab"),
    ("abc", "3/a/abc"),
    ("mollusk-svm", "mo/ll/mollusk-svm"),
    ("Serde", "se/rd/serde"),
])
def test_index_path(name, path):
    assert SparseIndex.index_path(name) == path


def test_versions_from_index_file():
    lines = [json.dumps({"name": "mollusk-svm", "vers": v}) for v in ("0.3.0", "0.4.0")]
    session = FakeSession(FakeResponse(text="\n".join(lines) + "\n"))
    index = SparseIndex("sparse+https://index.crates.io", session=session)

    assert index.versions("mollusk-svm") == {"0.3.0", "0.4.0"}
    assert session.urls == ["https://index.crates.io/mo/ll/mollusk-svm"]
    assert index.is_visible("mollusk-svm", "0.4.0")
    assert not index.is_visible("mollusk-svm", "0.5.0")


def test_unknown_package_has_no_versions():
    index = SparseIndex("https://index.crates.io/", session=FakeSession(FakeResponse(404)))
    assert index.versions("brand-new") == set()


def test_transport_errors_mean_not_visible_yet():
    session = FakeSession(error=requests.exceptions.ConnectionError("reset"))
    index = SparseIndex("https://index.crates.io/", session=session)

    assert not index.is_visible("mollusk-svm", "0.4.0")
    with pytest.raises(requests.exceptions.RequestException):
        index.versions("mollusk-svm")


def test_registry_publish_failure(templates):
    runner = FakeRunner(lambda argv: (101, ""))
    registry = CargoRegistry(runner, templates)

    with pytest.raises(PublishFailure) as exc_info:
        registry.publish(Package(name="mollusk-svm", version="0.4.0"), "tok")

    assert exc_info.value.package == "mollusk-svm"
    assert exc_info.value.exit_code == 101
    assert runner.calls == [["cargo", "publish", "--package", "mollusk-svm"]]
