# shared fixtures for backend api tests
# provides mock db, test users, auth tokens, and httpx / websocket test clients

import re
from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from bson import ObjectId
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport
from pymongo.errors import PyMongoError

from calmcampus.main import app
from calmcampus.services.db import db as real_db, get_db
from calmcampus.services.auth_service import create_access_token
from calmcampus.dependencies import get_current_user


# test ids (fixed so every import of this module agrees)
TEACHER_OID = ObjectId("65a0000000000000000000a1")
TEACHER_2_OID = ObjectId("65a0000000000000000000a2")
STUDENT_OID = ObjectId("65a0000000000000000000b1")
STUDENT_2_OID = ObjectId("65a0000000000000000000b2")
STUDENT_3_OID = ObjectId("65a0000000000000000000b3")
TEACHER_ID = str(TEACHER_OID)
TEACHER_2_ID = str(TEACHER_2_OID)
STUDENT_ID = str(STUDENT_OID)
STUDENT_2_ID = str(STUDENT_2_OID)
STUDENT_3_ID = str(STUDENT_3_OID)

GROUP_ID = "grp000000001"
INACTIVE_GROUP_ID = "grp000000002"

NOW = datetime.now(timezone.utc)


def days_ago(n: int) -> datetime:
    return NOW - timedelta(days=n)


# test user documents (as they'd appear from mongodb)

TEACHER_DOC = {
    "_id": TEACHER_OID,
    "email": "priya.sharma@calmcampus.edu",
    "first_name": "Priya",
    "last_name": "Sharma",
    "role": "teacher",
    "phone": "919800000001",
    "college_name": "City College",
    "created_at": "2025-01-10T00:00:00+00:00",
}

TEACHER_2_DOC = {
    "_id": TEACHER_2_OID,
    "email": "rahul.verma@calmcampus.edu",
    "first_name": "Rahul",
    "last_name": "Verma",
    "role": "teacher",
    "phone": "919800000002",
    "college_name": "City College",
    "created_at": "2025-01-11T00:00:00+00:00",
}

STUDENT_DOC = {
    "_id": STUDENT_OID,
    "email": "aarav.mehta@calmcampus.edu",
    "first_name": "Aarav",
    "last_name": "Mehta",
    "role": "student",
    "phone": "919811111111",
    "college_name": "City College",
    "course": "B.Sc Physics",
    "year_of_study": "2",
    "guardian_phone": "919822222222",
    "created_at": "2025-02-01T00:00:00+00:00",
}

STUDENT_2_DOC = {
    "_id": STUDENT_2_OID,
    "email": "diya.kapoor@calmcampus.edu",
    "first_name": "Diya",
    "last_name": "Kapoor",
    "role": "student",
    "phone": "919833333333",
    "college_name": "City College",
    "course": "B.Com",
    "year_of_study": "1",
    "guardian_phone": "919844444444",
    "created_at": "2025-02-02T00:00:00+00:00",
}

# not linked to any teacher — used for registration
STUDENT_3_DOC = {
    "_id": STUDENT_3_OID,
    "email": "kabir.singh@calmcampus.edu",
    "first_name": "Kabir",
    "last_name": "Singh",
    "role": "student",
    "phone": "919855555555",
    "college_name": "City College",
    "course": "B.A. Psychology",
    "year_of_study": "3",
    "guardian_phone": "",
    "created_at": "2025-02-03T00:00:00+00:00",
}


# sample data

def _mood(user_id: str, n: int, value: int) -> dict:
    ts = days_ago(n)
    return {
        "_id": ObjectId(),
        "user_id": user_id,
        "date": ts.date().isoformat(),
        "mood_value": value,
        "created_at": ts.isoformat(),
        "updated_at": ts.isoformat(),
    }


# student 1: 2, 1, 2 over the last three days (critical); student 2: a single 4 (good)
SAMPLE_MOODS = [
    _mood(STUDENT_ID, 0, 2),
    _mood(STUDENT_ID, 1, 1),
    _mood(STUDENT_ID, 2, 2),
    _mood(STUDENT_2_ID, 1, 4),
]

SAMPLE_RELATIONSHIPS = [
    {
        "_id": ObjectId(),
        "teacher_id": TEACHER_ID,
        "student_id": STUDENT_ID,
        "student_phone": "919811111111",
        "notes": "Check in weekly",
        "is_active": True,
        "assigned_at": "2025-03-01T00:00:00+00:00",
    },
    {
        "_id": ObjectId(),
        "teacher_id": TEACHER_ID,
        "student_id": STUDENT_2_ID,
        "student_phone": "919833333333",
        "notes": "",
        "is_active": True,
        "assigned_at": "2025-03-02T00:00:00+00:00",
    },
]

SAMPLE_APPOINTMENTS = [
    {
        "_id": ObjectId(),
        "appointment_id": "appt00000001",
        "user_id": STUDENT_ID,
        "appointment_type": "Counseling",
        "counselor_name": "Dr. Rao",
        "scheduled_at": (NOW + timedelta(days=2)).isoformat(),
        "status": "confirmed",
        "notes": None,
        "created_by": TEACHER_ID,
        "created_at": days_ago(1).isoformat(),
    },
    {
        "_id": ObjectId(),
        "appointment_id": "appt00000002",
        "user_id": STUDENT_2_ID,
        "appointment_type": "Check-in",
        "counselor_name": "Dr. Rao",
        "scheduled_at": (NOW + timedelta(days=3)).isoformat(),
        "status": "pending",
        "notes": "Exam stress",
        "created_by": STUDENT_2_ID,
        "created_at": days_ago(1).isoformat(),
    },
]

SAMPLE_COMPLETIONS = [
    {
        "_id": ObjectId(),
        "completion_id": "cmp000000001",
        "user_id": STUDENT_ID,
        "activity_id": "breathing-478",
        "actual_duration_minutes": 10,
        "mood_before": 2,
        "mood_after": 3,
        "completed_at": days_ago(1).isoformat(),
    },
]

SAMPLE_SESSIONS = [
    {
        "_id": ObjectId(),
        "session_id": "ses000000001",
        "user_id": STUDENT_ID,
        "session_type": "meditation",
        "duration_minutes": 15,
        "mood_before": 2,
        "mood_after": 3,
        "created_at": days_ago(2).isoformat(),
    },
    {
        "_id": ObjectId(),
        "session_id": "ses000000002",
        "user_id": STUDENT_ID,
        "session_type": "journaling",
        "duration_minutes": 20,
        "mood_before": None,
        "mood_after": None,
        "created_at": days_ago(20).isoformat(),
    },
]

SAMPLE_GROUPS = [
    {
        "_id": ObjectId(),
        "group_id": GROUP_ID,
        "name": "Exam Stress Circle",
        "description": "A space to share how exam season is going",
        "created_by": TEACHER_ID,
        "is_active": True,
        "created_at": days_ago(10).isoformat(),
    },
    {
        "_id": ObjectId(),
        "group_id": INACTIVE_GROUP_ID,
        "name": "Archived Circle",
        "description": "",
        "created_by": TEACHER_ID,
        "is_active": False,
        "created_at": days_ago(30).isoformat(),
    },
]

SAMPLE_MEMBERS = [
    {"_id": ObjectId(), "group_id": GROUP_ID, "user_id": STUDENT_ID, "joined_at": days_ago(9).isoformat()},
]

SAMPLE_MESSAGES = [
    {
        "_id": ObjectId(),
        "message_id": "msg000000001",
        "group_id": GROUP_ID,
        "user_id": STUDENT_ID,
        "message": "Anyone else nervous about finals?",
        "message_type": "text",
        "reply_to": None,
        "edited_at": None,
        "created_at": (NOW - timedelta(hours=2)).isoformat(),
    },
    {
        "_id": ObjectId(),
        "message_id": "msg000000002",
        "group_id": GROUP_ID,
        "user_id": TEACHER_ID,
        "message": "Totally normal. Let's talk through a plan.",
        "message_type": "text",
        "reply_to": "msg000000001",
        "edited_at": None,
        "created_at": (NOW - timedelta(hours=1)).isoformat(),
    },
]

SAMPLE_NOTIFICATIONS = [
    {
        "_id": ObjectId(),
        "notification_id": "ntf000000001",
        "user_id": STUDENT_ID,
        "type": "wellness_tip",
        "title": "Try a breathing break",
        "message": "Two minutes of box breathing can reset a stressful afternoon",
        "read": False,
        "priority": "low",
        "created_at": days_ago(1).isoformat(),
    },
]


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor — supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = list(data or [])
        self._index = 0

    def sort(self, key, direction=1):
        keys = key if isinstance(key, list) else [(key, direction)]
        # stable sorts applied from the least significant key
        for field, dirn in reversed(keys):
            present = [d for d in self._data if d.get(field) is not None]
            missing = [d for d in self._data if d.get(field) is None]
            present.sort(key=lambda d: d[field], reverse=dirn == -1)
            self._data = present + missing
        return self

    def skip(self, n):
        self._data = self._data[n:]
        return self

    def limit(self, n):
        self._data = self._data[:n]
        return self

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._data):
            raise StopAsyncIteration
        item = self._data[self._index]
        self._index += 1
        return item

    async def to_list(self, length=None):
        if length is not None:
            return self._data[:length]
        return self._data


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None):
        self._data = data or []
        self.inserted = []

    def find(self, query=None, projection=None):
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock(results)

    async def find_one(self, query=None, projection=None):
        if not query:
            return self._data[0] if self._data else None
        for doc in self._data:
            if self._matches(doc, query):
                return doc
        return None

    async def insert_one(self, doc):
        oid = doc.get("_id", ObjectId())
        doc["_id"] = oid
        self._data.append(doc)
        self.inserted.append(doc)
        result = MagicMock()
        result.inserted_id = oid
        return result

    async def count_documents(self, query=None):
        if not query:
            return len(self._data)
        return len([d for d in self._data if self._matches(d, query)])

    def _apply_update(self, doc, update):
        if "$set" in update:
            doc.update(update["$set"])
        if "$addToSet" in update:
            for key, val in update["$addToSet"].items():
                if key not in doc:
                    doc[key] = []
                if val not in doc[key]:
                    doc[key].append(val)

    async def update_one(self, query, update, upsert=False):
        result = MagicMock()
        result.matched_count = 0
        result.modified_count = 0
        result.upserted_id = None
        for doc in self._data:
            if self._matches(doc, query):
                before = dict(doc)
                self._apply_update(doc, update)
                result.matched_count = 1
                result.modified_count = int(doc != before)
                return result

        if upsert:
            # equality fields of the filter seed the new document
            doc = {k: v for k, v in query.items() if not k.startswith("$") and not isinstance(v, dict)}
            doc.update(update.get("$setOnInsert", {}))
            self._apply_update(doc, update)
            inserted = await self.insert_one(doc)
            result.upserted_id = inserted.inserted_id
        return result

    async def update_many(self, query, update):
        result = MagicMock()
        result.matched_count = 0
        result.modified_count = 0
        for doc in self._data:
            if self._matches(doc, query):
                before = dict(doc)
                self._apply_update(doc, update)
                result.matched_count += 1
                result.modified_count += int(doc != before)
        return result

    async def delete_one(self, query):
        result = MagicMock()
        result.deleted_count = 0
        for idx, doc in enumerate(self._data):
            if self._matches(doc, query):
                del self._data[idx]
                result.deleted_count = 1
                break
        return result

    async def create_index(self, *args, **kwargs):
        return "mock_index"

    def _matches(self, doc, query):
        """basic mongodb query matching for tests"""
        for key, value in query.items():
            if key == "$or":
                if not any(self._matches(doc, cond) for cond in value):
                    return False
                continue
            doc_val = doc.get(key)
            if isinstance(value, dict):
                if not self._matches_operators(doc_val, value):
                    return False
            elif doc_val != value:
                return False
        return True

    def _matches_operators(self, doc_val, ops):
        for op, operand in ops.items():
            if op == "$in" and doc_val not in operand:
                return False
            if op == "$ne" and doc_val == operand:
                return False
            if op == "$gte" and (doc_val is None or doc_val < operand):
                return False
            if op == "$gt" and (doc_val is None or doc_val <= operand):
                return False
            if op == "$lte" and (doc_val is None or doc_val > operand):
                return False
            if op == "$lt" and (doc_val is None or doc_val >= operand):
                return False
            if op == "$regex":
                flags = re.IGNORECASE if ops.get("$options") == "i" else 0
                if doc_val is None or not re.search(operand, str(doc_val), flags):
                    return False
        return True


class FailingCollection(MockCollection):
    """every read and write raises, as if the store were unreachable"""

    def find(self, query=None, projection=None):
        raise PyMongoError("connection refused")

    async def find_one(self, query=None, projection=None):
        raise PyMongoError("connection refused")

    async def count_documents(self, query=None):
        raise PyMongoError("connection refused")

    async def insert_one(self, doc):
        raise PyMongoError("connection refused")

    async def update_one(self, query, update, upsert=False):
        raise PyMongoError("connection refused")


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self):
        self.users = MockCollection([
            TEACHER_DOC.copy(),
            TEACHER_2_DOC.copy(),
            STUDENT_DOC.copy(),
            STUDENT_2_DOC.copy(),
            STUDENT_3_DOC.copy(),
        ])
        self.mood_entries = MockCollection([m.copy() for m in SAMPLE_MOODS])
        self.activity_completions = MockCollection([c.copy() for c in SAMPLE_COMPLETIONS])
        self.wellness_sessions = MockCollection([s.copy() for s in SAMPLE_SESSIONS])
        self.appointments = MockCollection([a.copy() for a in SAMPLE_APPOINTMENTS])
        self.teacher_student_relationships = MockCollection([r.copy() for r in SAMPLE_RELATIONSHIPS])
        self.peer_groups = MockCollection([g.copy() for g in SAMPLE_GROUPS])
        self.group_members = MockCollection([m.copy() for m in SAMPLE_MEMBERS])
        self.group_messages = MockCollection([m.copy() for m in SAMPLE_MESSAGES])
        self.notifications = MockCollection([n.copy() for n in SAMPLE_NOTIFICATIONS])

    async def connect(self):
        pass

    async def close(self):
        pass

    async def ensure_indexes(self):
        pass


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


def user_dict(doc: dict) -> dict:
    """user dict as get_current_user would return it"""
    user = {k: v for k, v in doc.items() if k != "_id"}
    user["id"] = str(doc["_id"])
    return user


def login_as(doc: dict):
    """switch the authenticated user for the rest of a test"""

    async def override_get_current_user():
        return user_dict(doc)

    app.dependency_overrides[get_current_user] = override_get_current_user


def token_for(doc: dict) -> str:
    return create_access_token({"sub": str(doc["_id"]), "role": doc["role"]})


@pytest.fixture
def teacher_token():
    """jwt access token for the test teacher"""
    return token_for(TEACHER_DOC)


@pytest.fixture
def student_token():
    """jwt access token for the test student"""
    return token_for(STUDENT_DOC)


@pytest_asyncio.fixture
async def client(mock_db):
    """httpx async test client with only the database mocked"""

    async def override_get_db():
        return mock_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def teacher_client(client):
    """client authenticated as a teacher"""
    login_as(TEACHER_DOC)
    yield client


@pytest_asyncio.fixture
async def student_client(client):
    """client authenticated as a student"""
    login_as(STUDENT_DOC)
    yield client


@pytest.fixture
def ws_client(mock_db, monkeypatch):
    """sync test client for websocket flows — authenticates with real tokens"""

    async def override_get_db():
        return mock_db

    monkeypatch.setattr(real_db, "connect", AsyncMock())
    monkeypatch.setattr(real_db, "ensure_indexes", AsyncMock())
    monkeypatch.setattr(real_db, "close", AsyncMock())
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as tc:
        yield tc

    app.dependency_overrides.clear()
