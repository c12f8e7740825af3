"""
Persistence gateway module.

Durable storage for the two collections the service owns: "identities"
and "events". Every save replaces the whole collection (last writer
wins); the service always hands over a complete, de-duplicated list.

Backends:
- JsonFileGateway: two JSON files in a local directory
- BackendGateway: key-value collections on the backend HTTP API
"""

import json
import os
import tempfile
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Protocol, Sequence, TypeVar
import requests
from .config import Config
from .errors import ContractViolation, StorageError
from .models import AttendanceEvent, Identity, to_local
from .recognition.descriptor import Descriptor
from .logging_config import get_logger

logger = get_logger(__name__)

IDENTITIES = 'identities'
EVENTS = 'events'

T = TypeVar('T')


class PersistenceGateway(Protocol):
    """Storage contract consumed by the attendance service."""

    def load_identities(self) -> List[Identity]: ...

    def save_identities(self, identities: Sequence[Identity]) -> None: ...

    def load_events(self) -> List[AttendanceEvent]: ...

    def save_events(self, events: Sequence[AttendanceEvent]) -> None: ...

    def clear_all(self) -> None: ...


def _parse_instant(value: str) -> datetime:
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return datetime.fromisoformat(value)


def identity_to_dict(identity: Identity) -> Dict[str, Any]:
    return {
        'id': identity.id,
        'displayName': identity.display_name,
        'descriptor': identity.descriptor.to_list() if identity.descriptor is not None else None,
        'createdAt': identity.created_at.isoformat(),
        'photoUrl': identity.photo_url,
    }


def identity_from_dict(data: Dict[str, Any]) -> Identity:
    descriptor = data.get('descriptor')
    return Identity(
        id=data['id'],
        display_name=data['displayName'],
        descriptor=Descriptor(descriptor) if descriptor is not None else None,
        created_at=_parse_instant(data['createdAt']),
        photo_url=data.get('photoUrl'),
    )


def event_to_dict(event: AttendanceEvent) -> Dict[str, Any]:
    return {
        'id': event.id,
        'identityId': event.identity_id,
        'identityNameSnapshot': event.identity_name_snapshot,
        'timestamp': event.timestamp.isoformat(),
        'dayKey': event.day_key.isoformat(),
    }


def event_from_dict(data: Dict[str, Any]) -> AttendanceEvent:
    return AttendanceEvent(
        id=data['id'],
        identity_id=data['identityId'],
        identity_name_snapshot=data['identityNameSnapshot'],
        timestamp=to_local(_parse_instant(data['timestamp'])),
        day_key=date.fromisoformat(data['dayKey']),
    )


def parse_records(
    collection: str,
    records: List[Dict[str, Any]],
    parse: Callable[[Dict[str, Any]], T]
) -> List[T]:
    """
    Decode stored records of one collection.

    Raises:
        StorageError: If any record is missing a field or holds an
            invalid value
    """
    parsed = []
    for index, record in enumerate(records):
        try:
            parsed.append(parse(record))
        except (KeyError, TypeError, ValueError, AttributeError, ContractViolation) as e:
            logger.error(f'❌ Invalid {collection} record #{index}: {e!r}')
            raise StorageError(f'Invalid {collection} record #{index}: {e!r}') from e
    return parsed


class JsonFileGateway:
    """
    Stores each collection as a JSON file under data_dir.

    Files are written to a temporary sibling and moved into place, so a
    crash mid-write leaves the previous collection intact.
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir

    def load_identities(self) -> List[Identity]:
        return parse_records(IDENTITIES, self._read(IDENTITIES), identity_from_dict)

    def save_identities(self, identities: Sequence[Identity]) -> None:
        self._write(IDENTITIES, [identity_to_dict(i) for i in identities])

    def load_events(self) -> List[AttendanceEvent]:
        return parse_records(EVENTS, self._read(EVENTS), event_from_dict)

    def save_events(self, events: Sequence[AttendanceEvent]) -> None:
        self._write(EVENTS, [event_to_dict(e) for e in events])

    def clear_all(self) -> None:
        for collection in (IDENTITIES, EVENTS):
            path = self._path(collection)
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(f'Failed to remove {path}: {e}') from e
        logger.info(f'Cleared stored data in {self.data_dir}')

    def _path(self, collection: str) -> str:
        return os.path.join(self.data_dir, f'{collection}.json')

    def _read(self, collection: str) -> List[Dict[str, Any]]:
        path = self._path(collection)
        if not os.path.exists(path):
            logger.debug(f'{path} not found, starting empty')
            return []

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f'Failed to read {path}: {e}') from e

        if not isinstance(data, list):
            raise StorageError(f'{path} does not hold a list')
        return data

    def _write(self, collection: str, records: List[Dict[str, Any]]) -> None:
        path = self._path(collection)
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.data_dir, prefix=f'.{collection}-', suffix='.tmp'
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(records, f, ensure_ascii=False)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f'Failed to write {path}: {e}') from e

        logger.debug(f'Saved {len(records)} {collection} to {path}')


class BackendGateway:
    """
    Stores collections on the backend API.

    GET    {backend_url}/api/collections/{name}  -> JSON list (404 = empty)
    PUT    {backend_url}/api/collections/{name}  <- JSON list
    DELETE {backend_url}/api/collections/{name}
    """

    def __init__(self, backend_url: str, timeout: float = 10):
        self.backend_url = backend_url.rstrip('/')
        self.timeout = timeout

    def load_identities(self) -> List[Identity]:
        return parse_records(IDENTITIES, self._get(IDENTITIES), identity_from_dict)

    def save_identities(self, identities: Sequence[Identity]) -> None:
        self._put(IDENTITIES, [identity_to_dict(i) for i in identities])

    def load_events(self) -> List[AttendanceEvent]:
        return parse_records(EVENTS, self._get(EVENTS), event_from_dict)

    def save_events(self, events: Sequence[AttendanceEvent]) -> None:
        self._put(EVENTS, [event_to_dict(e) for e in events])

    def clear_all(self) -> None:
        for collection in (IDENTITIES, EVENTS):
            url = self._url(collection)
            try:
                response = requests.delete(url, timeout=self.timeout)
                if response.status_code != 404:
                    response.raise_for_status()
            except requests.exceptions.RequestException as e:
                logger.error(f'❌ Failed to clear {collection}: {e}')
                raise StorageError(f'Failed to clear {collection}: {e}') from e
        logger.info('Cleared stored data on backend')

    def _url(self, collection: str) -> str:
        return f'{self.backend_url}/api/collections/{collection}'

    def _get(self, collection: str) -> List[Dict[str, Any]]:
        url = self._url(collection)
        try:
            response = requests.get(url, timeout=self.timeout)
            if response.status_code == 404:
                return []
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f'❌ Failed to load {collection} from {url}: {e}')
            raise StorageError(f'Failed to load {collection}: {e}') from e
        except ValueError as e:
            raise StorageError(f'Backend returned invalid JSON for {collection}') from e

        if not isinstance(data, list):
            raise StorageError(f'Backend {collection} is not a list')

        logger.info(f'Fetched {len(data)} {collection} from backend')
        return data

    def _put(self, collection: str, records: List[Dict[str, Any]]) -> None:
        url = self._url(collection)
        try:
            response = requests.put(url, json=records, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f'❌ Failed to save {collection} to {url}: {e}')
            raise StorageError(f'Failed to save {collection}: {e}') from e

        logger.debug(f'Saved {len(records)} {collection} to backend')


def create_gateway(config: Config) -> PersistenceGateway:
    """
    Build the gateway selected by config.storage_backend.

    Raises:
        ValueError: For an unknown backend name
    """
    if config.storage_backend == 'file':
        return JsonFileGateway(config.data_dir)
    if config.storage_backend == 'http':
        return BackendGateway(config.backend_url, config.request_timeout)
    raise ValueError(f'Unknown storage backend: {config.storage_backend}')
