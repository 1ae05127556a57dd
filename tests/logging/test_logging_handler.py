from __future__ import annotations

import os
import sys
import json

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from utils.logging_utils import REDACTED, LoggingHandler


class FakeConfig:
    def __init__(self, opts: dict):
        self._opts = opts

    def get_option(self, section: str, key: str, fallback=None):
        if section != 'LOG':
            return fallback
        return self._opts.get(key, fallback)


class CaptureOutput:
    def __init__(self):
        self.lines = []

    def write(self, message, **kwargs):
        self.lines.append(str(message))

    def debug(self, message, **kwargs):
        # Used by json writer mirror path
        self.lines.append(str(message))


def _read_payloads(tmp_path):
    files = list(tmp_path.glob('*.log'))
    assert files, 'No log files created'
    with files[0].open('r', encoding='utf-8') as f:
        return [json.loads(l) for l in f if l.strip()]


def test_json_logging_redaction_and_truncation(tmp_path):
    cfg = FakeConfig({
        'active': True,
        'dir': str(tmp_path),
        'per_run': True,
        'format': 'json',
        'mirror_to_console': False,
        'redact': True,
        'redact_keys': 'token,password,secret,key',
        'truncate_chars': 10,
        'log_settings': 'basic',
    })
    logger = LoggingHandler(cfg, output_handler=None)

    assert logger.active() is True
    logger.settings({'password': 'shhhhh', 'note': 'x' * 50})

    payload = _read_payloads(tmp_path)[-1]
    data = payload.get('data') or {}
    assert payload['event'] == 'settings'
    assert data.get('password') == REDACTED
    assert data.get('note', '').endswith('…')
    assert len(data.get('note')) == 11  # 10 chars + ellipsis


def test_text_logging_and_console_mirror(tmp_path):
    cap = CaptureOutput()
    cfg = FakeConfig({
        'active': True,
        'dir': str(tmp_path),
        'per_run': True,
        'format': 'text',
        'mirror_to_console': True,
        'log_settings': 'basic',
    })
    logger = LoggingHandler(cfg, output_handler=cap)
    logger.settings({'label': 'prompt'})

    # One text line mirrored to console
    assert any('settings' in line and 'label=prompt' in line for line in cap.lines)


def test_inactive_logger_writes_nothing(tmp_path):
    logger = LoggingHandler(FakeConfig({'active': False, 'dir': str(tmp_path)}))
    logger.settings({'a': 1})
    logger.prompt_event('prompt_shown', {'field': 'host'})
    assert logger.active() is False
    assert list(tmp_path.iterdir()) == []


def test_prompt_events_follow_aspect_level(tmp_path):
    cfg = FakeConfig({'active': True, 'dir': str(tmp_path), 'log_prompt': 'off', 'log_settings': 'off'})
    logger = LoggingHandler(cfg)
    logger.prompt_event('prompt_shown', {'field': 'host'})
    logger.input_accepted('host', 'localhost')
    events = [p['event'] for p in _read_payloads(tmp_path)]
    assert events == ['input_accepted']


def test_accepted_values_only_logged_at_detail(tmp_path):
    cfg = FakeConfig({'active': True, 'dir': str(tmp_path), 'log_input': 'detail', 'redact': False})
    logger = LoggingHandler(cfg)
    logger.input_accepted('host', 'localhost')
    logger.input_accepted('password', 'hunter2', hidden=True)
    first, second = _read_payloads(tmp_path)
    assert first['data'] == {'field': 'host', 'hidden': False, 'value': 'localhost'}
    assert second['data']['value'] == REDACTED
    assert 'hunter2' not in json.dumps(second)

    basic_dir = tmp_path / 'basic'
    basic = LoggingHandler(FakeConfig({'active': True, 'dir': str(basic_dir)}))
    basic.input_accepted('host', 'localhost')
    payload = _read_payloads(basic_dir)[-1]
    assert 'value' not in payload['data']


def test_error_records_message_and_stack(tmp_path):
    logger = LoggingHandler(FakeConfig({'active': True, 'dir': str(tmp_path)}))
    try:
        raise OSError('input stream closed')
    except OSError as exc:
        logger.error('core.readers', exc)
    payload = _read_payloads(tmp_path)[-1]
    assert payload['severity'] == 'error'
    assert payload['component'] == 'core.readers'
    assert payload['data']['message'] == 'input stream closed'
    assert 'OSError' in payload['data']['stack']


def test_unwritable_log_dir_leaves_logging_inactive(tmp_path):
    blocker = tmp_path / 'not-a-dir'
    blocker.write_text('x', encoding='utf-8')
    logger = LoggingHandler(FakeConfig({'active': True, 'dir': str(blocker)}))
    assert logger.active() is False
    logger.settings({'a': 1})
