import os
import sys
import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Keep the default engine away from the working directory before anything imports it.
os.environ.setdefault("DB_URL", f"sqlite:///{Path(tempfile.mkdtemp()) / 'wallet_hub_test.db'}")


class FakeBackend:
    """
    Stand-in for BackendClient: answers each call from a queue of payloads or exceptions.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def invoke(self, function_name, body, access_token=None):
        self.calls.append({"function": function_name, "body": body, "token": access_token})
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def fake_backend():
    return FakeBackend


@pytest.fixture
def sql_kv(tmp_path):
    from wallet_hub import models
    from wallet_hub.store import SqlKeyValueStore

    engine = create_engine(f"sqlite:///{tmp_path / 'kv.db'}", connect_args={"check_same_thread": False})
    models.Base.metadata.create_all(bind=engine)
    return SqlKeyValueStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))
