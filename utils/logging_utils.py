from __future__ import annotations

import json
import os
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

REDACTED = '***redacted***'
DEFAULT_REDACT_KEYS = ['api_key', 'authorization', 'token', 'password', 'secret', 'key']

LEVELS = {
    'off': 0,
    'minimal': 1,
    'basic': 1,
    'detail': 2,
    'trace': 3,
}

# Level used for an aspect when neither log_<aspect> nor verbosity is set
ASPECT_DEFAULTS = {
    'settings': 'basic',
    'messages': 'off',
    'provider': 'basic',
    'storage': 'basic',
    'render': 'off',
    'image': 'basic',
    'errors': 'basic',
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def _safe_str(x: Any) -> str:
    try:
        return str(x)
    except Exception:
        return '<unprintable>'


def scrub(data: Any, redact_keys: List[str], limit: int) -> Any:
    """Copy of ``data`` with sensitive keys masked and long strings cut to ``limit``."""
    if isinstance(data, str):
        return data[:limit] + '…' if limit and len(data) > limit else data
    if isinstance(data, dict):
        return {
            _safe_str(k): (REDACTED if _safe_str(k).lower() in redact_keys else scrub(v, redact_keys, limit))
            for k, v in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [scrub(x, redact_keys, limit) for x in data]
    return data


@dataclass
class LogSettings:
    """The [LOG] section, read once."""

    active: bool = False
    format: str = 'json'
    mirror: bool = False
    redact: bool = True
    redact_keys: List[str] = field(default_factory=lambda: list(DEFAULT_REDACT_KEYS))
    truncate: int = 2000
    directory: str = 'logs'
    file: str = ''
    per_run: bool = True
    aspects: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config) -> 'LogSettings':
        def get(key: str, fallback: Any = None) -> Any:
            try:
                value = config.get_option('LOG', key, fallback)
            except Exception:
                return fallback
            return fallback if value is None else value

        fmt = _safe_str(get('format', 'json')).strip().lower()
        raw_keys = get('redact_keys', None)
        if isinstance(raw_keys, str) and raw_keys.strip():
            keys = [k.strip().lower() for k in raw_keys.split(',') if k.strip()]
        elif isinstance(raw_keys, list) and raw_keys:
            keys = [_safe_str(k).strip().lower() for k in raw_keys]
        else:
            keys = list(DEFAULT_REDACT_KEYS)

        verbosity = get('verbosity', None)
        aspects = {}
        for aspect, default in ASPECT_DEFAULTS.items():
            level = get(f'log_{aspect}', None)
            if not (isinstance(level, str) and level.strip()):
                level = verbosity if isinstance(verbosity, str) and verbosity.strip() else default
            aspects[aspect] = LEVELS.get(level.strip().lower(), 0)

        return cls(
            active=bool(get('active', False)),
            format=fmt if fmt in ('json', 'text') else 'json',
            mirror=bool(get('mirror_to_console', False)),
            redact=bool(get('redact', True)),
            redact_keys=keys,
            truncate=int(get('truncate_chars', 2000) or 2000),
            directory=_safe_str(get('dir', 'logs') or 'logs'),
            file=_safe_str(get('file', '') or '').strip(),
            per_run=bool(get('per_run', True)),
            aspects=aspects,
        )


class LoggingHandler:
    """
    Centralized, configurable logging sink with per-aspect gating.

    - Format: JSONL or plain text
    - File policy: per-run timestamped file in [LOG].dir or explicit [LOG].file
    - Console mirror: optional, through a rich Console when provided
    - Redaction & truncation: applied to data payloads
    """

    _SEVERITY_STYLES = {
        'error': 'bold red',
        'warning': 'yellow',
        'debug': 'dim',
    }

    def __init__(self, config, output_handler=None) -> None:
        self._settings = LogSettings.from_config(config)
        self._output = output_handler
        self._run_id = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')
        self._log_path = self._open_logfile() if self._settings.active else None

    # --- Public helpers -------------------------------------------------
    def active(self) -> bool:
        return bool(self._settings.active and self._log_path)

    @property
    def path(self) -> Optional[str]:
        return self._log_path

    def is_enabled(self, aspect: str, min_level: str = 'basic') -> bool:
        """Return True if logging is active and the given aspect meets the min level."""
        if not self.active():
            return False
        return self._settings.aspects.get(aspect, 0) >= LEVELS.get(min_level, 1)

    def log(self, event: str, *, component: str, aspect: str, severity: str = 'info', data: Optional[dict] = None) -> None:
        self._emit(aspect, 'basic', event, component, severity, data)

    def settings(self, effective: dict) -> None:
        self._emit('settings', 'basic', 'settings', 'core.session', 'info', effective)

    def provider_start(self, meta: dict, component: str = 'core.turns') -> None:
        self._emit('provider', 'basic', 'provider_start', component, 'info', meta)

    def provider_done(self, meta: dict, component: str = 'core.turns') -> None:
        self._emit('provider', 'basic', 'provider_done', component, 'info', meta)

    def messages_event(self, kind: str, details: dict, component: str = 'core.messages') -> None:
        self._emit('messages', 'basic', kind, component, 'info', details)

    def messages_detail(self, kind: str, details: dict, component: str = 'core.messages') -> None:
        self._emit('messages', 'detail', kind, component, 'info', details)

    def storage_event(self, kind: str, details: dict, component: str = 'core.store') -> None:
        self._emit('storage', 'basic', kind, component, 'info', details)

    def render_event(self, kind: str, details: dict, component: str = 'ui.render') -> None:
        self._emit('render', 'basic', kind, component, 'info', details)

    def image_event(self, kind: str, details: dict, component: str = 'contexts.image') -> None:
        self._emit('image', 'basic', kind, component, 'info', details)

    def error(self, where: str, exc: BaseException, *, stack: Optional[str] = None) -> None:
        if not self.is_enabled('errors'):
            return
        stack = stack or ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self._emit('errors', 'basic', 'error', where, 'error', {'message': _safe_str(exc), 'stack': stack})

    # --- Internals ------------------------------------------------------
    def _open_logfile(self) -> Optional[str]:
        s = self._settings
        app_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        # Absolute stays; relative resolves against the app root
        log_dir = os.path.expanduser(s.directory)
        if not os.path.isabs(log_dir):
            log_dir = os.path.join(app_root, log_dir)

        if s.file:
            name = os.path.expanduser(s.file)
            path = name if os.path.isabs(name) else os.path.join(log_dir, name)
        else:
            path = os.path.join(log_dir, f'neural-core-{self._run_id}.log' if s.per_run else 'neural-core.log')

        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'a', encoding='utf-8'):
                pass
        except OSError:
            return None
        return path

    def _emit(self, aspect: str, min_level: str, event: str, component: str,
              severity: str, data: Optional[Dict[str, Any]]) -> None:
        if not self.is_enabled(aspect, min_level):
            return
        s = self._settings
        payload = {
            'ts': _now_iso(),
            'run_id': self._run_id,
            'event': event,
            'component': component,
            'aspect': aspect,
            'severity': severity,
            'data': scrub(data or {}, s.redact_keys if s.redact else [], s.truncate),
        }
        line = self._format_json(payload) if s.format == 'json' else self._format_text(payload)
        try:
            with open(self._log_path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
        except OSError:
            pass
        self._mirror_line(line, severity)

    @staticmethod
    def _format_json(payload: Dict[str, Any]) -> str:
        try:
            return json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError):
            return json.dumps(dict(payload, data=_safe_str(payload.get('data'))), ensure_ascii=False)

    @staticmethod
    def _format_text(payload: Dict[str, Any]) -> str:
        # One line with key=val previews
        pairs = []
        for k, v in payload['data'].items():
            if isinstance(v, (dict, list)):
                try:
                    v = json.dumps(v, ensure_ascii=False)
                except (TypeError, ValueError):
                    v = _safe_str(v)
            pairs.append(f"{k}={v}")
        head = f"[{payload['ts']}] {payload['component']} {payload['aspect']}:{payload['event']}"
        return ' '.join([head] + pairs)

    def _mirror_line(self, line: str, severity: Optional[str]) -> None:
        if not (self._settings.mirror and self._output):
            return
        style = self._SEVERITY_STYLES.get((severity or '').lower(), 'dim')
        try:
            self._output.print(line, style=style, markup=False, highlight=False)
        except Exception:
            pass
