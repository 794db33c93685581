"""AWS Lambda handler for Onestop to Basecamp Sync."""
import json
import logging
import os
import time
from typing import Dict, Any

from basecamp.client import BasecampClient
from basecamp.people import PeopleDirectory
from basecamp.schedule import ScheduleClient
from basecamp.todos import TodoClient
from basecamp.transport import RetryingTransport
from processor.errors import ErrorKind, SyncError
from processor.groups import (
    GroupDirectory,
    parse_couple_table,
    parse_group_table,
    parse_member_table,
    parse_supergroup_table,
)
from processor.reconciler import Reconciler
from processor.role_requests import RoleRequestBuilder
from processor.validation import HelperValidator
from source.payload_scanner import PayloadScanner
from storage.dynamodb_store import DynamoDBPropertyStore
from storage.row_mappings import RowMappingStore

ACTION_SYNC = 'sync'
ACTION_FORCE_SYNC = 'force_sync'
ACTION_RELOAD_GROUPS = 'reload_groups'

STATUS_CODES = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.TAB_NOT_FOUND: 400,
}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def load_config() -> Dict[str, Any]:
    """Read configuration from environment variables."""
    return {
        'state_table_name': os.environ.get('STATE_TABLE_NAME', 'onestop-row-mappings'),
        'settings_table_name': os.environ.get('SETTINGS_TABLE_NAME', 'onestop-settings'),
        'account_id': os.environ.get('BASECAMP_ACCOUNT_ID', ''),
        'project_id': os.environ.get('BASECAMP_PROJECT_ID', ''),
        'todolist_id': os.environ.get('BASECAMP_TODOLIST_ID', ''),
        'schedule_id': os.environ.get('BASECAMP_SCHEDULE_ID', ''),
        'access_token': os.environ.get('BASECAMP_ACCESS_TOKEN', ''),
        'log_level': os.environ.get('LOG_LEVEL', 'INFO'),
        'timeout_seconds': int(os.environ.get('TIMEOUT_SECONDS', '30')),
        'max_attempts': int(os.environ.get('MAX_ATTEMPTS', '3')),
        'retry_base_delay_ms': int(os.environ.get('RETRY_BASE_DELAY_MS', '1000')),
    }


def reload_groups(scanner: PayloadScanner, directory: GroupDirectory) -> Dict[str, int]:
    """
    Rebuild the persisted groups, aliases and members from the payload tabs.

    Args:
        scanner: Scanner over the invocation payload
        directory: Directory to reload

    Returns:
        Counts of groups, aliases and members persisted
    """
    groups = parse_group_table(scanner.get_group_table())
    supergroups = parse_supergroup_table(scanner.get_supergroup_table())
    members = parse_member_table(scanner.get_member_table())
    couples = parse_couple_table(scanner.get_couple_table())

    groups_map, alias_map = directory.reload(groups, supergroups, members, couples)
    return {'groups': len(groups_map), 'aliases': len(alias_map), 'members': len(directory.member_map)}


def _error_response(message: str, error: Exception, status_code: int, start_time: float) -> Dict[str, Any]:
    duration = time.time() - start_time
    body = {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(duration, 2)
    }
    if isinstance(error, SyncError):
        body['error_kind'] = error.kind.value

    return {
        'statusCode': status_code,
        'body': json.dumps(body)
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for Onestop to Basecamp Sync.

    Args:
        event: Invocation payload with an 'action' and the Onestop 'tabs'
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    config = load_config()
    action = event.get('action', ACTION_SYNC)

    setup_logging(config['log_level'])
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        f"Lambda execution started for action {action}",
        extra={
            'state_table_name': config['state_table_name'],
            'settings_table_name': config['settings_table_name'],
            'max_attempts': config['max_attempts']
        }
    )

    try:
        settings_store = DynamoDBPropertyStore(table_name=config['settings_table_name'])
        scanner = PayloadScanner(event)
        directory = GroupDirectory(settings_store)

        if action == ACTION_RELOAD_GROUPS:
            counts = reload_groups(scanner, directory)
            duration = time.time() - start_time
            logger.info(f"Groups reloaded", extra={'duration_seconds': round(duration, 2), **counts})
            return {
                'statusCode': 200,
                'body': json.dumps({
                    'message': 'Groups reloaded successfully',
                    'statistics': {**counts, 'duration_seconds': round(duration, 2)}
                })
            }

        if action not in (ACTION_SYNC, ACTION_FORCE_SYNC):
            raise ValueError(f"Unknown action: {action}")

        transport = RetryingTransport(
            max_attempts=config['max_attempts'],
            base_delay=config['retry_base_delay_ms'],
            timeout=config['timeout_seconds']
        )
        client = BasecampClient(
            account_id=config['account_id'],
            project_id=config['project_id'],
            access_token=config['access_token'],
            transport=transport
        )
        people = PeopleDirectory(client, settings_store)
        reconciler = Reconciler(
            todo_client=TodoClient(client, config['todolist_id']),
            schedule_client=ScheduleClient(client, config['schedule_id']),
            authorizer=client,
            mapping_store=RowMappingStore(DynamoDBPropertyStore(table_name=config['state_table_name'])),
            request_builder=RoleRequestBuilder(directory, people),
            validator=HelperValidator(directory, people)
        )

        rows = scanner.get_rows()
        logger.info(f"Scanned {len(rows)} rows from the Onestop")

        if action == ACTION_FORCE_SYNC:
            sync_result = reconciler.force_reconcile(rows)
        else:
            sync_result = reconciler.reconcile(rows)

        duration = time.time() - start_time
        statistics = {
            'rows_scanned': len(rows),
            'rows_created': sync_result.created,
            'rows_updated': sync_result.updated,
            'rows_repaired': sync_result.repaired,
            'rows_unchanged': sync_result.unchanged,
            'rows_deleted': sync_result.deleted,
            'rows_failed': sync_result.failed,
            'duration_seconds': round(duration, 2)
        }

        logger.info(
            f"Lambda execution completed successfully",
            extra={**statistics, 'errors': sync_result.errors}
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Sync completed successfully',
                'statistics': statistics,
                'assigned_row_ids': sync_result.assigned_row_ids,
                'errors': sync_result.errors
            })
        }

    except SyncError as e:
        logger.error(
            f"Sync aborted: {str(e)}",
            extra={'error_type': type(e).__name__, 'error_kind': e.kind.value},
            exc_info=True
        )
        return _error_response('Sync aborted', e, STATUS_CODES.get(e.kind, 500), start_time)

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response('Sync failed', e, 500, start_time)
