import asyncio
from types import SimpleNamespace

import httpx
import pytest
from bson import ObjectId


class FakeCursor:
    def __init__(self, docs):
        self.docs = list(docs)

    def sort(self, key, direction=1):
        self.docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        return self.docs if length is None else self.docs[:length]


class FakeCollection:
    """Just enough of a motor collection for the prediction service"""

    def __init__(self):
        self.docs = []

    async def insert_one(self, doc):
        doc = dict(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, query):
        for doc in self.docs:
            if all(doc.get(k) == v for k, v in query.items()):
                return dict(doc)
        return None

    def find(self, query):
        return FakeCursor(
            dict(doc) for doc in self.docs
            if all(doc.get(k) == v for k, v in query.items())
        )


class BrokenCollection(FakeCollection):
    async def insert_one(self, doc):
        raise RuntimeError("write concern failed")


class FakeDatabase:
    def __init__(self, predictions=None):
        self.predictions = predictions or FakeCollection()


def run(coro):
    return asyncio.run(coro)


def json_transport(payload, status_code=200, calls=None):
    """httpx transport answering every request with the same JSON body"""
    def handler(request):
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=payload)
    return httpx.MockTransport(handler)


def failing_transport(calls=None):
    def handler(request):
        if calls is not None:
            calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.MockTransport(handler)


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def owm_payload():
    return {
        "coord": {"lat": 23.03, "lon": 72.58},
        "main": {"temp": 31.4, "humidity": 58},
        "rain": {"1h": 2.5},
        "name": "Ahmedabad",
    }
