"""
Remote document service
Document-oriented read/write access to the cloud backend. The production
implementation talks to the Firestore REST API; anything honoring the
DocumentService contract can be swapped in.
"""

import base64
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from constants import FIRESTORE_BASE_URL
from exceptions import RemoteServiceError
from utils import ensure_utc

logger = logging.getLogger("main")


class Document:
    """A remote document: its id (last path segment), full path and decoded data"""

    def __init__(self, doc_id: str, path: str, data: Dict[str, Any]):
        self.id = doc_id
        self.path = path
        self.data = data

    def get(self, *keys, default=None):
        """First present value among keys (remote docs mix camelCase and snake_case)"""
        for key in keys:
            if key in self.data and self.data[key] is not None:
                return self.data[key]
        return default

    def __repr__(self):
        return f"Document({self.path!r})"


class DocumentService(ABC):
    @abstractmethod
    def read_collection(self, path: str, filters: Optional[Dict[str, Any]] = None) -> List[Document]:
        """List documents of a collection, optionally keeping only equality matches"""

    @abstractmethod
    def read_document(self, path: str) -> Optional[Document]:
        """Read one document; None when it does not exist"""

    @abstractmethod
    def write_document(self, path: str, data: Dict[str, Any]) -> Document:
        """Create or replace a document"""


# Firestore typed value codec

def encode_value(value: Any) -> Dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode("ascii")}
    if isinstance(value, datetime):
        value = ensure_utc(value)
        return {"timestampValue": value.isoformat().replace("+00:00", "Z")}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {str(k): encode_value(v) for k, v in data.items()}


def decode_value(value: Dict[str, Any]) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return ensure_utc(value["timestampValue"])
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "referenceValue" in value:
        return value["referenceValue"]
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    raise ValueError(f"Unknown Firestore value type: {list(value)}")


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: decode_value(v) for k, v in fields.items()}


class FirestoreDocumentService(DocumentService):
    """Firestore REST v1 client"""

    PAGE_SIZE = 300

    def __init__(self, project_id: str, api_key: str = None, id_token: str = None, timeout: int = 10,
                 session: requests.Session = None):
        if not project_id:
            raise ValueError("Firestore project id is required")
        self.project_id = project_id
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "SmartExam Sync"})
        if id_token:
            self.session.headers.update({"Authorization": f"Bearer {id_token}"})
        self.root = f"projects/{project_id}/databases/(default)/documents"

    def set_id_token(self, id_token: Optional[str]):
        """Authenticate further requests as a signed-in user"""
        if id_token:
            self.session.headers["Authorization"] = f"Bearer {id_token}"
        else:
            self.session.headers.pop("Authorization", None)

    def _url(self, path: str = "") -> str:
        path = path.strip("/")
        return f"{FIRESTORE_BASE_URL}/{self.root}/{path}" if path else f"{FIRESTORE_BASE_URL}/{self.root}"

    def _params(self, **extra):
        params = {k: v for k, v in extra.items() if v is not None}
        if self.api_key:
            params["key"] = self.api_key
        return params

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Firestore {method} {url} failed: {e}")
            raise RemoteServiceError(f"Network error: {e}")

        if response.status_code in (401, 403):
            raise RemoteServiceError(f"Not authorized ({response.status_code})", status=response.status_code)
        return response

    def _check(self, response: requests.Response, context: str):
        if response.status_code >= 400:
            raise RemoteServiceError(
                f"{context} failed with HTTP {response.status_code}: {response.text[:200]}",
                status=response.status_code,
            )

    def _to_document(self, raw: Dict[str, Any]) -> Document:
        name = raw.get("name", "")
        relative = name.split("/documents/", 1)[-1]
        return Document(relative.rsplit("/", 1)[-1], relative, decode_fields(raw.get("fields", {})))

    def read_document(self, path: str) -> Optional[Document]:
        response = self._request("GET", self._url(path), params=self._params())
        if response.status_code == 404:
            return None
        self._check(response, f"Read of {path}")
        return self._to_document(response.json())

    def read_collection(self, path: str, filters: Optional[Dict[str, Any]] = None) -> List[Document]:
        if filters:
            return self._run_query(path, filters)

        documents = []
        page_token = None
        while True:
            response = self._request(
                "GET", self._url(path), params=self._params(pageSize=self.PAGE_SIZE, pageToken=page_token)
            )
            self._check(response, f"Listing of {path}")
            body = response.json()
            documents.extend(self._to_document(raw) for raw in body.get("documents", []))
            page_token = body.get("nextPageToken")
            if not page_token:
                return documents

    def _run_query(self, path: str, filters: Dict[str, Any]) -> List[Document]:
        parent, _, collection_id = path.strip("/").rpartition("/")
        conditions = [
            {"fieldFilter": {"field": {"fieldPath": field}, "op": "EQUAL", "value": encode_value(value)}}
            for field, value in filters.items()
        ]
        where = conditions[0] if len(conditions) == 1 else {"compositeFilter": {"op": "AND", "filters": conditions}}
        body = {"structuredQuery": {"from": [{"collectionId": collection_id}], "where": where}}

        response = self._request("POST", f"{self._url(parent)}:runQuery", params=self._params(), json=body)
        self._check(response, f"Query of {path}")
        return [self._to_document(row["document"]) for row in response.json() if "document" in row]

    def write_document(self, path: str, data: Dict[str, Any]) -> Document:
        response = self._request("PATCH", self._url(path), params=self._params(), json={"fields": encode_fields(data)})
        self._check(response, f"Write of {path}")
        return self._to_document(response.json())


def create_document_service(settings: Dict) -> DocumentService:
    """Build the configured document service from the settings dict"""
    firestore = settings.get("firestore", {})
    return FirestoreDocumentService(
        project_id=firestore.get("project_id"),
        api_key=firestore.get("api_key") or None,
        timeout=int(firestore.get("timeout", 10)),
    )
