from __future__ import annotations

import json
import os
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

REDACTED = '***redacted***'
DEFAULT_REDACT_KEYS = ('password', 'passphrase', 'secret', 'token', 'api_key', 'key')


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


class LoggingHandler:
    """
    Run log for prompt sessions, off unless [LOG] active is set.

    - Format: one JSON object per line, or plain text
    - File: per-run ``entreat-<timestamp>.log`` in [LOG] dir, or [LOG] file
    - Aspects: settings, prompt, input, errors; each off, basic or detail
    - Data payloads are redacted by key and truncated; answers to hidden
      fields never reach the file
    """

    _LEVELS = {'off': 0, 'basic': 1, 'detail': 2}

    _DEFAULTS = {
        'settings': 'basic',
        'prompt': 'off',
        'input': 'basic',
        'errors': 'basic',
    }

    def __init__(self, config, output_handler=None) -> None:
        self._config = config
        self._output = output_handler
        self._format = str(self._get('format', 'json') or 'json').strip().lower()
        self._mirror = bool(self._get('mirror_to_console', False))
        self._redact = bool(self._get('redact', True))
        self._truncate = int(self._get('truncate_chars', 2000) or 0)
        self._redact_keys = self._parse_keys(self._get('redact_keys', None))

        self._aspects: Dict[str, int] = {}
        for aspect, default in self._DEFAULTS.items():
            raw = self._get(f'log_{aspect}', default)
            name = 'off' if raw is False else str(raw).strip().lower()
            self._aspects[aspect] = self._LEVELS.get(name, 0)

        self._run_id = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')
        self._log_path = self._open_logfile() if self._get('active', False) else None

    def active(self) -> bool:
        return self._log_path is not None

    # --- Events ---------------------------------------------------------
    def settings(self, effective: dict) -> None:
        self._emit('settings', 'session', 'settings', 'info', effective)

    def prompt_event(self, kind: str, details: dict, component: str = 'core.prompting') -> None:
        self._emit(kind, component, 'prompt', 'info', details)

    def input_accepted(self, field: str, value: str, *, hidden: bool = False) -> None:
        data: Dict[str, Any] = {'field': field, 'hidden': hidden}
        if self._aspects['input'] >= self._LEVELS['detail']:
            data['value'] = REDACTED if hidden else value
        self._emit('input_accepted', 'core.prompting', 'input', 'info', data)

    def error(self, where: str, exc: BaseException) -> None:
        stack = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self._emit('error', where, 'errors', 'error', {'message': str(exc), 'stack': stack})

    # --- Internals ------------------------------------------------------
    def _get(self, key: str, fallback: Any = None) -> Any:
        return self._config.get_option('LOG', key, fallback)

    @staticmethod
    def _parse_keys(raw: Any) -> tuple:
        if isinstance(raw, str) and raw.strip():
            return tuple(k.strip().lower() for k in raw.split(',') if k.strip())
        return DEFAULT_REDACT_KEYS

    def _open_logfile(self) -> Optional[str]:
        # Relative log dirs resolve against the application root (one level above utils/)
        app_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        log_dir = os.path.expanduser(str(self._get('dir', 'logs') or 'logs'))
        if not os.path.isabs(log_dir):
            log_dir = os.path.join(app_root, log_dir)

        explicit = os.path.expanduser(str(self._get('file', '') or '').strip())
        if explicit:
            path = os.path.join(log_dir, explicit)
        elif self._get('per_run', True):
            path = os.path.join(log_dir, f'entreat-{self._run_id}.log')
        else:
            path = os.path.join(log_dir, 'entreat.log')

        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'a', encoding='utf-8'):
                pass
        except OSError:
            return None
        return path

    def _clean(self, obj: Any) -> Any:
        if isinstance(obj, str):
            if self._truncate and len(obj) > self._truncate:
                return obj[: self._truncate] + '…'
            return obj
        if isinstance(obj, dict):
            return {
                str(k): REDACTED if self._redact and str(k).lower() in self._redact_keys else self._clean(v)
                for k, v in obj.items()
            }
        if isinstance(obj, (list, tuple)):
            return [self._clean(x) for x in obj]
        return obj

    def _emit(self, event: str, component: str, aspect: str, severity: str, data: dict) -> None:
        if self._log_path is None or self._aspects.get(aspect, 0) < self._LEVELS['basic']:
            return
        payload = {
            'ts': _now_iso(),
            'run_id': self._run_id,
            'event': event,
            'component': component,
            'aspect': aspect,
            'severity': severity,
            'data': self._clean(data),
        }
        if self._format == 'text':
            pairs = ' '.join(f'{k}={v}' for k, v in payload['data'].items())
            line = f"[{payload['ts']}] {component} {aspect}:{event} {pairs}"
        else:
            line = json.dumps(payload, ensure_ascii=False, default=str)
        try:
            with open(self._log_path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
        except OSError:
            return
        if self._mirror and self._output is not None:
            self._output.debug(line)
