"""Document store used by the fan-out service and the client-facing routes.

The fan-out path only needs three operations (active tokens, merge status
fields, append history); the rest serve the app screens the original client
drove straight from the document database. Two backends are provided:

- ``SqlAlchemyEventStore`` over the ``users``/``devices``/``function_configs``/
  ``notifications`` tables (default).
- ``FirestoreEventStore`` over ``users/{uid}`` and its ``devices``,
  ``functions`` and ``notifications`` sub-collections.

Field names passed in and returned are snake_case; the Firestore backend
translates them to the camelCase document fields the mobile app reads.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from sensor_relay.models.user import UserStatus
from sensor_relay.models.device import Device
from sensor_relay.models.function_config import FunctionConfig
from sensor_relay.models.notification import NotificationRecord
from sensor_relay.utils.datetime import utc_now, ensure_aware_utc

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    """Placeholder resolved to the write time by the backend."""

    def __repr__(self):
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

USER_STATUS_FIELDS = (
    "mail_detected",
    "mail_last_updated_at",
    "dryer_running",
    "dryer_last_event",
    "dryer_last_updated_at",
    "last_sound_event_at",
    "last_presence_event_at",
    "last_vibration_event_at",
)

DEVICE_FIELDS = (
    "name",
    "model",
    "system_version",
    "bundle_id",
    "token",
    "is_active",
    "is_listening",
    "task",
    "battery",
)

FUNCTION_FIELDS = ("use_case_name", "notification_title", "notification_body", "threshold")

HISTORY_FIELDS = ("title", "body", "type", "event", "created_at")

DEFAULT_HISTORY_LIMIT = 50


def _check_fields(fields: Dict[str, Any], allowed) -> None:
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown fields: {sorted(unknown)}")


class EventStore(ABC):
    """Minimal document interface; any backend implementing it is substitutable."""

    # Core fan-out operations

    @abstractmethod
    def get_active_tokens(self, user_id: str) -> List[str]:
        """Tokens of devices with ``is_active`` set and a non-null token."""

    @abstractmethod
    def merge_user_fields(self, user_id: str, fields: Dict[str, Any]) -> None:
        """Set only ``fields`` on the user's status document, creating it if needed."""

    @abstractmethod
    def append_history(self, user_id: str, record: Dict[str, Any]) -> str:
        """Append an immutable history record; returns its generated id."""

    # Client-facing operations

    @abstractmethod
    def ensure_user(self, user_id: str) -> None:
        pass

    @abstractmethod
    def get_user_status(self, user_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_history(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[Dict[str, Any]]:
        """Newest-first history records."""

    @abstractmethod
    def upsert_device(self, user_id: str, device_id: str, fields: Dict[str, Any]) -> None:
        """Create or merge a device record and bump its ``updated_at``."""

    @abstractmethod
    def list_devices(self, user_id: str) -> List[Dict[str, Any]]:
        """Devices ordered by ``updated_at`` descending."""

    @abstractmethod
    def get_function_config(self, user_id: str, function_name: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def save_function_config(self, user_id: str, function_name: str, fields: Dict[str, Any]) -> None:
        pass

    def rollback(self) -> None:
        """Discard a partially applied unit of work after a failure."""


class SqlAlchemyEventStore(EventStore):
    """Store backed by the SQLAlchemy session of the current request."""

    def __init__(self, db: Session):
        self.db = db

    def rollback(self) -> None:
        self.db.rollback()

    def _resolve(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        now = utc_now()
        return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in fields.items()}

    def _user(self, user_id: str) -> UserStatus:
        user = self.db.query(UserStatus).filter(UserStatus.id == user_id).first()
        if not user:
            user = UserStatus(id=user_id, created_at=utc_now())
            self.db.add(user)
            self.db.flush()
        return user

    def get_active_tokens(self, user_id: str) -> List[str]:
        rows = self.db.query(Device.token).filter(
            Device.user_id == user_id,
            Device.is_active.is_(True),
            Device.token.isnot(None),
        ).order_by(Device.updated_at.desc()).all()
        return [r.token for r in rows if r.token]

    def merge_user_fields(self, user_id: str, fields: Dict[str, Any]) -> None:
        _check_fields(fields, USER_STATUS_FIELDS)
        user = self._user(user_id)
        for key, value in self._resolve(fields).items():
            setattr(user, key, value)
        self.db.commit()

    def append_history(self, user_id: str, record: Dict[str, Any]) -> str:
        _check_fields(record, HISTORY_FIELDS)
        self._user(user_id)
        values = self._resolve(record)
        values.setdefault("created_at", utc_now())
        row = NotificationRecord(user_id=user_id, **values)
        self.db.add(row)
        self.db.commit()
        return row.id

    def ensure_user(self, user_id: str) -> None:
        self._user(user_id)
        self.db.commit()

    def get_user_status(self, user_id: str) -> Optional[Dict[str, Any]]:
        user = self.db.query(UserStatus).filter(UserStatus.id == user_id).first()
        if not user:
            return None
        status = {"id": user.id}
        for key in USER_STATUS_FIELDS:
            value = getattr(user, key)
            status[key] = ensure_aware_utc(value) if key.endswith("_at") else value
        return status

    def list_history(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[Dict[str, Any]]:
        rows = self.db.query(NotificationRecord).filter(
            NotificationRecord.user_id == user_id
        ).order_by(NotificationRecord.created_at.desc()).limit(limit).all()
        return [
            {
                "id": r.id,
                "title": r.title,
                "body": r.body,
                "type": r.type,
                "event": r.event,
                "created_at": ensure_aware_utc(r.created_at),
            }
            for r in rows
        ]

    def upsert_device(self, user_id: str, device_id: str, fields: Dict[str, Any]) -> None:
        _check_fields(fields, DEVICE_FIELDS)
        self._user(user_id)
        device = self.db.query(Device).filter(
            Device.user_id == user_id,
            Device.device_id == device_id,
        ).first()
        if not device:
            device = Device(user_id=user_id, device_id=device_id)
            self.db.add(device)
        for key, value in self._resolve(fields).items():
            setattr(device, key, value)
        device.updated_at = utc_now()
        self.db.commit()

    def list_devices(self, user_id: str) -> List[Dict[str, Any]]:
        devices = self.db.query(Device).filter(
            Device.user_id == user_id
        ).order_by(Device.updated_at.desc()).all()
        result = []
        for d in devices:
            data = {key: getattr(d, key) for key in DEVICE_FIELDS}
            data["device_id"] = d.device_id
            data["updated_at"] = ensure_aware_utc(d.updated_at)
            result.append(data)
        return result

    def get_function_config(self, user_id: str, function_name: str) -> Optional[Dict[str, Any]]:
        cfg = self.db.query(FunctionConfig).filter(
            FunctionConfig.user_id == user_id,
            FunctionConfig.function_name == function_name,
        ).first()
        if not cfg:
            return None
        data = {key: getattr(cfg, key) for key in FUNCTION_FIELDS}
        data["function_name"] = cfg.function_name
        data["updated_at"] = ensure_aware_utc(cfg.updated_at)
        return data

    def save_function_config(self, user_id: str, function_name: str, fields: Dict[str, Any]) -> None:
        _check_fields(fields, FUNCTION_FIELDS)
        self._user(user_id)
        cfg = self.db.query(FunctionConfig).filter(
            FunctionConfig.user_id == user_id,
            FunctionConfig.function_name == function_name,
        ).first()
        if not cfg:
            cfg = FunctionConfig(user_id=user_id, function_name=function_name)
            self.db.add(cfg)
        for key, value in self._resolve(fields).items():
            setattr(cfg, key, value)
        cfg.updated_at = utc_now()
        self.db.commit()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


# Document fields that do not follow the plain camelCase rule
_FIRESTORE_NAMES = {"bundle_id": "bundleID"}


def _to_doc_field(name: str) -> str:
    return _FIRESTORE_NAMES.get(name, _camel(name))


class FirestoreEventStore(EventStore):
    """Store backed by Cloud Firestore through firebase_admin."""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        # resolved on first use, inside the request's error handling
        if self._client is None:
            from firebase_admin import firestore
            self._client = firestore.client()
        return self._client

    def _user_ref(self, user_id: str):
        return self.client.collection("users").document(user_id)

    def _to_doc(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        from firebase_admin import firestore
        return {
            _to_doc_field(k): (firestore.SERVER_TIMESTAMP if v is SERVER_TIMESTAMP else v)
            for k, v in fields.items()
        }

    def _from_doc(self, data: Dict[str, Any], allowed) -> Dict[str, Any]:
        out = {}
        for key in allowed:
            doc_key = _to_doc_field(key)
            value = data.get(doc_key)
            out[key] = ensure_aware_utc(value) if key.endswith("_at") else value
        return out

    def get_active_tokens(self, user_id: str) -> List[str]:
        from google.cloud.firestore_v1.base_query import FieldFilter

        snap = self._user_ref(user_id).collection("devices").where(
            filter=FieldFilter("isActive", "==", True)
        ).get()
        tokens = []
        for doc in snap:
            data = doc.to_dict() or {}
            if data.get("token"):
                tokens.append(data["token"])
        return tokens

    def merge_user_fields(self, user_id: str, fields: Dict[str, Any]) -> None:
        _check_fields(fields, USER_STATUS_FIELDS)
        self._user_ref(user_id).set(self._to_doc(fields), merge=True)

    def append_history(self, user_id: str, record: Dict[str, Any]) -> str:
        _check_fields(record, HISTORY_FIELDS)
        values = dict(record)
        values.setdefault("created_at", SERVER_TIMESTAMP)
        _, ref = self._user_ref(user_id).collection("notifications").add(self._to_doc(values))
        return ref.id

    def ensure_user(self, user_id: str) -> None:
        # merge with no fields creates the document without touching existing ones
        self._user_ref(user_id).set({}, merge=True)

    def get_user_status(self, user_id: str) -> Optional[Dict[str, Any]]:
        snap = self._user_ref(user_id).get()
        if not snap.exists:
            return None
        status = self._from_doc(snap.to_dict() or {}, USER_STATUS_FIELDS)
        status["mail_detected"] = bool(status["mail_detected"])
        status["dryer_running"] = bool(status["dryer_running"])
        status["id"] = user_id
        return status

    def list_history(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[Dict[str, Any]]:
        from firebase_admin import firestore

        docs = self._user_ref(user_id).collection("notifications").order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        ).limit(limit).get()
        history = []
        for doc in docs:
            item = self._from_doc(doc.to_dict() or {}, HISTORY_FIELDS)
            item["id"] = doc.id
            history.append(item)
        return history

    def upsert_device(self, user_id: str, device_id: str, fields: Dict[str, Any]) -> None:
        _check_fields(fields, DEVICE_FIELDS)
        values = dict(fields)
        values["updated_at"] = SERVER_TIMESTAMP
        self._user_ref(user_id).collection("devices").document(device_id).set(
            self._to_doc(values), merge=True
        )

    def list_devices(self, user_id: str) -> List[Dict[str, Any]]:
        from firebase_admin import firestore

        docs = self._user_ref(user_id).collection("devices").order_by(
            "updatedAt", direction=firestore.Query.DESCENDING
        ).get()
        devices = []
        for doc in docs:
            data = doc.to_dict() or {}
            item = self._from_doc(data, DEVICE_FIELDS)
            item["is_active"] = bool(item["is_active"])
            item["is_listening"] = bool(item["is_listening"])
            item["device_id"] = doc.id
            item["updated_at"] = ensure_aware_utc(data.get("updatedAt"))
            devices.append(item)
        return devices

    def get_function_config(self, user_id: str, function_name: str) -> Optional[Dict[str, Any]]:
        snap = self._user_ref(user_id).collection("functions").document(function_name).get()
        if not snap.exists:
            return None
        data = snap.to_dict() or {}
        cfg = self._from_doc(data, FUNCTION_FIELDS)
        cfg["function_name"] = function_name
        cfg["updated_at"] = ensure_aware_utc(data.get("updatedAt"))
        return cfg

    def save_function_config(self, user_id: str, function_name: str, fields: Dict[str, Any]) -> None:
        _check_fields(fields, FUNCTION_FIELDS)
        values = dict(fields)
        values["updated_at"] = SERVER_TIMESTAMP
        self._user_ref(user_id).collection("functions").document(function_name).set(
            self._to_doc(values), merge=True
        )
