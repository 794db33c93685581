"""Reconciliation of Onestop rows with Basecamp todos and schedule entries."""
import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set

from processor.errors import ErrorKind, SyncError
from processor.models import (
    RoleRequestMap,
    RoleTodoMap,
    Row,
    RowBasecampMapping,
    SyncResult,
)
from processor.roles import diff_roles
from processor.row_hasher import hash_row

logger = logging.getLogger(__name__)


def describe_row(row: Row) -> str:
    """Short human readable label for log messages."""
    return f"{row.what.value} ({row.start_time.isoformat()})"


class Reconciler:
    """
    Runs one reconciliation pass over the scanned rows.

    Every row with an id is joined to its persisted RowBasecampMapping and
    classified as unchanged, changed or in need of repair; rows without an
    id are created from scratch. Persisted rows that were not seen in the
    pass are removed from Basecamp afterwards.
    """

    def __init__(
        self,
        todo_client,
        schedule_client,
        authorizer,
        mapping_store,
        request_builder,
        clock: Callable = datetime.now,
        id_factory: Callable[[], str] = None,
        validator=None
    ):
        """
        Initialize the reconciler.

        Args:
            todo_client: Creates, updates and deletes todos
            schedule_client: Creates, updates and deletes schedule entries
            authorizer: Object with verify_authorization(), raising on failure
            mapping_store: Store of RowBasecampMapping keyed by row id
            request_builder: Builds role todo and schedule entry requests for a row
            clock: Returns the current time; called with a tzinfo or None
            id_factory: Generates new row ids
            validator: Optional; reports helper names that match no group, alias or person
        """
        self.todo_client = todo_client
        self.schedule_client = schedule_client
        self.authorizer = authorizer
        self.mapping_store = mapping_store
        self.request_builder = request_builder
        self.clock = clock
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self.validator = validator

    def reconcile(self, rows: Iterable[Row]) -> SyncResult:
        """
        Synchronize rows with Basecamp, skipping rows whose content is unchanged.

        Args:
            rows: Rows scanned from the Onestop in this pass

        Returns:
            SyncResult with per-state counts

        Raises:
            SyncError: Fatal errors such as UNAUTHORIZED abort the pass
        """
        return self._run(rows, force=False)

    def force_reconcile(self, rows: Iterable[Row]) -> SyncResult:
        """Synchronize rows, treating every existing row as changed."""
        return self._run(rows, force=True)

    def _run(self, rows: Iterable[Row], force: bool) -> SyncResult:
        # Abort before touching any row if Basecamp rejects us
        self.authorizer.verify_authorization()

        rows = list(rows)
        saved_mappings = self.mapping_store.get_all()
        processed_row_ids: Set[str] = set()
        result = SyncResult()

        logger.info(
            f"Starting reconciliation of {len(rows)} rows against "
            f"{len(saved_mappings)} saved rows (force={force})"
        )

        for row in rows:
            if self.validator is not None:
                self._validate_row(row, result)

            if row.row_id is None:
                logger.info(f"Row for {describe_row(row)} is new! Processing as a new row...")
                self._process_new_row(row, result)
            elif row.row_id not in saved_mappings:
                logger.info(f"Row for {describe_row(row)} has no saved mapping. Recreating...")
                self._process_new_row(row, result)
            else:
                self._process_existing_row(row, saved_mappings[row.row_id], force, result)

            # Rows only get an id once their todos and schedule entry exist
            if row.row_id is not None:
                processed_row_ids.add(row.row_id)

        self._delete_old_rows(saved_mappings, processed_row_ids, result)

        logger.info(
            f"Reconciliation complete: {result.created} created, {result.updated} updated, "
            f"{result.repaired} repaired, {result.unchanged} unchanged, "
            f"{result.deleted} deleted, {result.failed} failed"
        )
        return result

    def _process_new_row(self, row: Row, result: SyncResult) -> None:
        role_requests = self.request_builder.build_role_requests(row)
        role_todo_map = self._create_todos(role_requests)

        # The schedule entry is only created once at least one todo exists
        schedule_entry = None
        if role_todo_map:
            schedule_entry_request = self.request_builder.build_schedule_entry_request(
                row, role_requests, role_todo_map
            )
            schedule_entry = self.schedule_client.create_entry(schedule_entry_request)

        if schedule_entry is None:
            message = (
                f"Row for {describe_row(row)} was not saved: "
                f"{len(role_requests)} roles, {len(role_todo_map)} todos created, "
                f"schedule entry {'not created' if role_todo_map else 'skipped'}"
            )
            logger.warning(message)
            result.failed += 1
            result.errors.append(message)
            return

        if row.row_id is None:
            row.row_id = self.id_factory()
            result.assigned_row_ids[row.source_ref or row.row_id] = row.row_id

        self._save_row(row, role_todo_map, schedule_entry.id)
        result.created += 1

    def _process_existing_row(
        self,
        row: Row,
        mapping: RowBasecampMapping,
        force: bool,
        result: SyncResult
    ) -> None:
        role_requests = self.request_builder.build_role_requests(row)
        content_hash = hash_row(row)

        changed = force or content_hash != mapping.content_hash
        todos_incomplete = any(role not in mapping.role_todo_id_map for role in role_requests)
        schedule_entry_missing = mapping.schedule_entry_id is None

        if not (changed or todos_incomplete or schedule_entry_missing):
            logger.info(f"Row for {describe_row(row)} has not changed")
            result.unchanged += 1
            return

        role_todo_map = mapping.role_todo_map
        schedule_entry_id = mapping.schedule_entry_id

        if changed or todos_incomplete:
            logger.info(
                f"{'Changes detected' if changed else 'Missing todos detected'} "
                f"in row for {describe_row(row)}. Updating todos..."
            )
            role_todo_map = self._sync_todos(role_requests, role_todo_map)

        if changed or schedule_entry_missing:
            schedule_entry_request = self.request_builder.build_schedule_entry_request(
                row, role_requests, role_todo_map
            )
            schedule_entry_id = self._sync_schedule_entry(schedule_entry_request, schedule_entry_id)

        self._save_row(row, role_todo_map, schedule_entry_id, content_hash)

        if changed:
            result.updated += 1
        else:
            result.repaired += 1

    def _sync_todos(self, role_requests: RoleRequestMap, saved_role_todo_map: RoleTodoMap) -> RoleTodoMap:
        role_diff = diff_roles(role_requests, saved_role_todo_map)

        if role_diff.obsolete:
            logger.info(f"Found removed role(s): {role_diff.obsolete}")
            self._delete_todos(saved_role_todo_map[role].id for role in role_diff.obsolete)

        if role_diff.new:
            logger.info(f"New role(s) detected: {role_diff.new}")
        new_role_todo_map = self._create_todos({role: role_requests[role] for role in role_diff.new})

        updated_role_todo_map: RoleTodoMap = {}
        for role in role_diff.surviving:
            todo = saved_role_todo_map[role]
            try:
                self.todo_client.update_todo(todo.id, role_requests[role])
            except SyncError as e:
                if e.is_fatal:
                    raise
                logger.error(f"Error updating todo for role {role}: {e}")
                continue
            updated_role_todo_map[role] = todo

        return {**updated_role_todo_map, **new_role_todo_map}

    def _sync_schedule_entry(self, request, schedule_entry_id: Optional[str]) -> Optional[str]:
        if schedule_entry_id is None:
            schedule_entry = self.schedule_client.create_entry(request)
            return schedule_entry.id if schedule_entry else None

        try:
            self.schedule_client.update_entry(schedule_entry_id, request)
        except SyncError as e:
            if e.is_fatal:
                raise
            logger.error(f"Error updating schedule entry {schedule_entry_id}: {e}")
            return None

        return schedule_entry_id

    def _create_todos(self, role_requests: RoleRequestMap) -> RoleTodoMap:
        role_todo_map: RoleTodoMap = {}

        for role, request in role_requests.items():
            todo = self.todo_client.create_todo(request)
            if todo is None:
                logger.warning(f"Todo for role {role} was not created")
                continue
            role_todo_map[role] = todo

        return role_todo_map

    def _delete_todos(self, todo_ids: Iterable[str]) -> None:
        for todo_id in todo_ids:
            try:
                self.todo_client.delete_todo(todo_id)
            except SyncError as e:
                if e.is_fatal:
                    raise
                logger.error(f"Error deleting todo with id {todo_id}: {e}")

    def _delete_old_rows(
        self,
        saved_mappings: Dict[str, RowBasecampMapping],
        processed_row_ids: Set[str],
        result: SyncResult
    ) -> None:
        old_row_ids: List[str] = [
            row_id for row_id in saved_mappings
            if row_id not in processed_row_ids
        ]

        for row_id in old_row_ids:
            mapping = saved_mappings[row_id]
            logger.info(f"Row {row_id} is no longer on the Onestop. Deleting its todos...")
            self._delete_todos(mapping.role_todo_id_map.values())

            if mapping.schedule_entry_id and self._is_in_future(mapping.row_date):
                try:
                    self.schedule_client.delete_entry(mapping.schedule_entry_id)
                except SyncError as e:
                    if e.is_fatal:
                        raise
                    logger.error(f"Error deleting schedule entry {mapping.schedule_entry_id}: {e}")

            self.mapping_store.delete(row_id)
            result.deleted += 1

    def _is_in_future(self, row_date: str) -> bool:
        # Past schedule entries are kept as a historical record
        try:
            snapshot = datetime.fromisoformat(row_date)
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid saved row date {row_date!r}, keeping its schedule entry: {e}")
            return False
        return snapshot > self.clock(snapshot.tzinfo)

    def _save_row(
        self,
        row: Row,
        role_todo_map: RoleTodoMap,
        schedule_entry_id: Optional[str],
        content_hash: Optional[str] = None
    ) -> None:
        if row.row_id is None:
            raise SyncError(ErrorKind.ROW_MISSING_ID, f"Row does not have an id: {describe_row(row)}")

        mapping = RowBasecampMapping.from_role_todo_map(
            content_hash=content_hash or hash_row(row),
            role_todo_map=role_todo_map,
            row_date=row.start_time.isoformat(),
            schedule_entry_id=schedule_entry_id
        )
        self.mapping_store.put(row.row_id, mapping)

    def _validate_row(self, row: Row, result: SyncResult) -> None:
        for message in self.validator.validate_row(row):
            logger.warning(f"Row for {describe_row(row)}: {message}")
            result.errors.append(f"{describe_row(row)}: {message}")
