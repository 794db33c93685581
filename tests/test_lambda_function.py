"""Integration tests for Lambda handler."""
import json
import logging
import os
from unittest.mock import Mock, patch

import pytest

from lambda_function import JsonFormatter, lambda_handler, load_config, setup_logging
from processor.errors import ErrorKind, SyncError
from processor.groups import ALIASES_MAP_KEY, GROUPS_MAP_KEY, MEMBER_MAP_KEY
from processor.models import SyncResult


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'STATE_TABLE_NAME': 'test-row-mappings',
        'SETTINGS_TABLE_NAME': 'test-settings',
        'BASECAMP_ACCOUNT_ID': '999',
        'BASECAMP_PROJECT_ID': '123',
        'BASECAMP_TODOLIST_ID': '77',
        'BASECAMP_SCHEDULE_ID': '88',
        'BASECAMP_ACCESS_TOKEN': 'secret-token',
        'LOG_LEVEL': 'INFO',
        'TIMEOUT_SECONDS': '30',
        'MAX_ATTEMPTS': '3',
        'RETRY_BASE_DELAY_MS': '1000'
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.memory_limit_in_mb = 512
    context.invoked_function_arn = 'arn:aws:lambda:us-east-1:123456789012:function:test-function'
    context.aws_request_id = 'test-request-id'
    return context


@pytest.fixture
def sample_event():
    """Create a sync payload with one event row."""
    return {
        'action': 'sync',
        'tabs': {
            'Events': [
                {
                    'source_ref': '2',
                    'start_time': '2024-03-10T18:00:00',
                    'end_time': '2024-03-10T20:00:00',
                    'what': 'Large Group',
                    'in_charge': 'Andrew Chan'
                }
            ],
            'Groups': [['Group', 'Members', 'Aliases'], ['HG1', 'a, b', 'Home Group']],
            'Supergroups': [['Supergroup', 'Subgroups', 'Additional Members', 'Aliases'], ['UCSD', 'HG1', 'c', '']],
            'Members': [
                ['Name', 'Gender', 'Married', 'Parent', 'Class', 'Alternate Names'],
                ['a', 'Male', 'TRUE', '', '', 'Alpha'],
                ['b', 'Female', 'TRUE', '', '', ''],
            ],
            'Couples': [['Husband', 'Wife', 'Aliases'], ['a', 'b', 'The As']]
        }
    }


class TestLambdaHandler:
    """Test cases for Lambda handler."""

    @patch('lambda_function.DynamoDBPropertyStore')
    @patch('lambda_function.Reconciler')
    def test_successful_sync(
        self,
        mock_reconciler_class,
        mock_store_class,
        mock_env,
        mock_context,
        sample_event
    ):
        """Test successful end-to-end sync process."""
        mock_reconciler = Mock()
        mock_reconciler.reconcile.return_value = SyncResult(
            created=1,
            assigned_row_ids={'2': 'row-new'}
        )
        mock_reconciler_class.return_value = mock_reconciler

        response = lambda_handler(sample_event, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['message'] == 'Sync completed successfully'
        assert body['statistics']['rows_scanned'] == 1
        assert body['statistics']['rows_created'] == 1
        assert body['statistics']['rows_deleted'] == 0
        assert 'duration_seconds' in body['statistics']
        assert body['assigned_row_ids'] == {'2': 'row-new'}
        assert body['errors'] == []

        rows = mock_reconciler.reconcile.call_args.args[0]
        assert rows[0].what.value == 'Large Group'
        mock_reconciler.force_reconcile.assert_not_called()
        mock_store_class.assert_any_call(table_name='test-row-mappings')
        mock_store_class.assert_any_call(table_name='test-settings')

    @patch('lambda_function.DynamoDBPropertyStore')
    @patch('lambda_function.Reconciler')
    def test_force_sync(self, mock_reconciler_class, mock_store_class, mock_env, mock_context, sample_event):
        """Test the force_sync action forces every row through."""
        mock_reconciler = Mock()
        mock_reconciler.force_reconcile.return_value = SyncResult(updated=1)
        mock_reconciler_class.return_value = mock_reconciler
        sample_event['action'] = 'force_sync'

        response = lambda_handler(sample_event, mock_context)

        assert response['statusCode'] == 200
        assert json.loads(response['body'])['statistics']['rows_updated'] == 1
        mock_reconciler.reconcile.assert_not_called()

    @patch('lambda_function.DynamoDBPropertyStore')
    @patch('lambda_function.Reconciler')
    def test_unauthorized(self, mock_reconciler_class, mock_store_class, mock_env, mock_context, sample_event):
        """Test an authorization failure returns 401."""
        mock_reconciler = Mock()
        mock_reconciler.reconcile.side_effect = SyncError(ErrorKind.UNAUTHORIZED, 'Basecamp not authenticated')
        mock_reconciler_class.return_value = mock_reconciler

        response = lambda_handler(sample_event, mock_context)

        assert response['statusCode'] == 401
        body = json.loads(response['body'])
        assert body['message'] == 'Sync aborted'
        assert body['error_kind'] == 'unauthorized'
        assert 'Basecamp not authenticated' in body['error']

    @patch('lambda_function.DynamoDBPropertyStore')
    @patch('lambda_function.Reconciler')
    def test_missing_events_tab(self, mock_reconciler_class, mock_store_class, mock_env, mock_context):
        """Test a payload without the Events tab returns 400."""
        response = lambda_handler({'tabs': {}}, mock_context)

        assert response['statusCode'] == 400
        assert json.loads(response['body'])['error_kind'] == 'tab_not_found'
        mock_reconciler_class.return_value.reconcile.assert_not_called()

    @patch('lambda_function.DynamoDBPropertyStore')
    @patch('lambda_function.Reconciler')
    def test_data_integrity_error(self, mock_reconciler_class, mock_store_class, mock_env, mock_context, sample_event):
        """Test other fatal errors return 500."""
        mock_reconciler_class.return_value.reconcile.side_effect = SyncError(
            ErrorKind.ROW_MISSING_ID, 'Row does not have an id'
        )

        response = lambda_handler(sample_event, mock_context)

        assert response['statusCode'] == 500
        assert json.loads(response['body'])['error_kind'] == 'row_missing_id'

    @patch('lambda_function.DynamoDBPropertyStore')
    @patch('lambda_function.Reconciler')
    def test_unexpected_error(self, mock_reconciler_class, mock_store_class, mock_env, mock_context, sample_event):
        """Test unexpected exceptions return 500."""
        mock_reconciler_class.return_value.reconcile.side_effect = Exception('Unexpected error')

        response = lambda_handler(sample_event, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Sync failed'
        assert body['error'] == 'Unexpected error'
        assert body['error_type'] == 'Exception'
        assert 'duration_seconds' in body

    @patch('lambda_function.DynamoDBPropertyStore')
    def test_unknown_action(self, mock_store_class, mock_env, mock_context, sample_event):
        """Test an unknown action is rejected."""
        sample_event['action'] = 'explode'

        response = lambda_handler(sample_event, mock_context)

        assert response['statusCode'] == 500
        assert 'Unknown action' in json.loads(response['body'])['error']

    @patch('lambda_function.DynamoDBPropertyStore')
    def test_reload_groups(self, mock_store_class, mock_env, mock_context, sample_event, property_store):
        """Test reload_groups resolves and persists the group tables."""
        mock_store_class.return_value = property_store
        sample_event['action'] = 'reload_groups'

        response = lambda_handler(sample_event, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['statistics']['groups'] == 2
        assert body['statistics']['aliases'] == 3
        assert body['statistics']['members'] == 2
        assert property_store.get(GROUPS_MAP_KEY) == {'HG1': ['a', 'b'], 'UCSD': ['a', 'b', 'c']}
        assert property_store.get(ALIASES_MAP_KEY)['The As'] == ['a', 'b']
        assert property_store.get(MEMBER_MAP_KEY)['a']['married'] is True


def test_load_config_defaults():
    """Test configuration defaults when variables are unset."""
    with patch.dict(os.environ, {}, clear=True):
        config = load_config()

    assert config['state_table_name'] == 'onestop-row-mappings'
    assert config['settings_table_name'] == 'onestop-settings'
    assert config['max_attempts'] == 3
    assert config['retry_base_delay_ms'] == 1000
    assert config['timeout_seconds'] == 30


def test_setup_logging():
    """Test logging setup with JSON formatter."""
    setup_logging('DEBUG')

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, JsonFormatter)


def test_json_formatter():
    """Test log records are rendered as JSON."""
    record = logging.LogRecord('test', logging.INFO, __file__, 1, 'hello %s', ('world',), None)

    log_data = json.loads(JsonFormatter().format(record))

    assert log_data['message'] == 'hello world'
    assert log_data['level'] == 'INFO'
    assert log_data['logger'] == 'test'
