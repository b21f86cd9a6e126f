#!/usr/bin/env python3
"""
perllib_bridge.py - Python bridge for perllib Local:: module replacements

Receives one JSON request from Perl on stdin:

    {"module": "current_user", "function": "get_current_user", "params": {}}

routes it to the matching helper module and writes a JSON response to stdout.
"""

import json
import sys
import traceback
import importlib
import logging
import os
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

# Version info
__version__ = "1.0.0"

# Global configuration
DEBUG = int(os.environ.get('PERLLIB_BRIDGE_DEBUG', '0'))
MAX_REQUEST_SIZE = int(os.environ.get('PERLLIB_BRIDGE_MAX_SIZE', '1000000'))  # 1MB

# Helper modules the bridge may dispatch to
HELPER_MODULES = [
    'current_user',  # Local::CurrentUser
    'oracle',        # Local::Oracle
    'usage_logger',  # Local::UsageLogger
]

logger = logging.getLogger('PerllibBridge')


class BridgeRequestError(ValueError):
    """Malformed or rejected bridge request"""


def setup_python_path() -> None:
    """Set up Python path to find helper modules"""
    script_dir = Path(__file__).parent
    helpers_dir = script_dir / "helpers"

    for path in (helpers_dir, script_dir):
        if path.exists() and str(path) not in sys.path:
            sys.path.insert(0, str(path))
            logger.debug(f"Added to Python path: {path}")


def load_helper_module(module_name: str) -> Any:
    """Import one helper module by name"""
    if module_name not in HELPER_MODULES:
        raise ModuleNotFoundError(
            f"Module '{module_name}' not available. "
            f"Available modules: {HELPER_MODULES}"
        )

    try:
        module = importlib.import_module(f'helpers.{module_name}')
    except ImportError:
        # Fall back to direct import from the helpers directory
        module = importlib.import_module(module_name)

    logger.debug(f"Loaded helper module: {module.__name__}")
    return module


def validate_request(request: Dict[str, Any]) -> bool:
    """Validate incoming request structure and names"""
    if not isinstance(request, dict):
        raise BridgeRequestError("Request must be a JSON object")

    for field in ('module', 'function'):
        if not isinstance(request.get(field), str) or not request[field]:
            raise BridgeRequestError(f"Missing required field: {field}")

    module_name = request['module']
    function_name = request['function']

    # Private and dunder names are never callable from Perl
    if function_name.startswith('_') or '__' in module_name:
        raise BridgeRequestError(f"Potentially dangerous function/module name: {module_name}.{function_name}")

    for pattern in ('eval', 'import', 'subprocess'):
        if pattern in function_name.lower() or pattern in module_name.lower():
            raise BridgeRequestError(f"Potentially dangerous function/module name: {module_name}.{function_name}")

    if not module_name.replace('_', '').isalnum():
        raise BridgeRequestError(f"Invalid module name format: {module_name}")

    if not function_name.replace('_', '').isalnum():
        raise BridgeRequestError(f"Invalid function name format: {function_name}")

    return True


def call_helper_function(request: Dict[str, Any]) -> Dict[str, Any]:
    """Call the requested helper function and return result"""
    module_name = request['module']
    function_name = request['function']
    params = request.get('params', {})

    logger.debug(f"Calling {module_name}.{function_name} with params: {params}")

    module = load_helper_module(module_name)

    func = getattr(module, function_name, None)
    if func is None:
        available_functions = [name for name in dir(module) if not name.startswith('_')]
        raise AttributeError(
            f"Function '{function_name}' not found in module '{module_name}'. "
            f"Available functions: {available_functions}"
        )

    if not callable(func):
        raise TypeError(f"{module_name}.{function_name} is not callable")

    if isinstance(params, dict):
        result = func(**params)
    elif isinstance(params, list):
        result = func(*params)
    else:
        result = func(params)

    return {
        'success': True,
        'result': result,
        'module': module_name,
        'function': function_name
    }


def handle_special_requests(request: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Handle built-in requests that don't require helper modules"""
    module_name = request['module']
    function_name = request['function']

    if module_name == 'test' and function_name == 'ping':
        return {
            'success': True,
            'result': {
                'message': 'pong',
                'version': __version__,
                'platform': sys.platform,
                'input': request.get('params', {})
            }
        }

    if module_name == 'system' and function_name == 'info':
        return {
            'success': True,
            'result': {
                'python_version': sys.version,
                'platform': sys.platform,
                'version': __version__,
                'helper_modules': HELPER_MODULES,
                'environment_vars': {
                    k: v for k, v in os.environ.items()
                    if k.startswith('PERLLIB_')
                }
            }
        }

    return None


def format_error_response(error: Exception, request: Dict[str, Any]) -> Dict[str, Any]:
    """Format error into standard response structure"""
    response = {
        'success': False,
        'error': str(error),
        'error_type': type(error).__name__,
        'module': request.get('module', 'unknown'),
        'function': request.get('function', 'unknown')
    }

    if DEBUG >= 1:
        response['traceback'] = traceback.format_exc()

    logger.debug(f"Error in {response['module']}.{response['function']}: {error}")
    return response


def read_request(stream=None) -> Dict[str, Any]:
    """Read and parse JSON request from stdin"""
    input_data = (stream or sys.stdin).read()

    if not input_data.strip():
        raise BridgeRequestError("Empty input received")

    request_size = len(input_data.encode('utf-8'))
    if request_size > MAX_REQUEST_SIZE:
        raise BridgeRequestError(f"Request too large: {request_size} bytes (max: {MAX_REQUEST_SIZE})")

    try:
        request = json.loads(input_data)
    except json.JSONDecodeError as e:
        raise BridgeRequestError(f"Invalid JSON in request: {e}") from e

    if not isinstance(request, dict):
        raise BridgeRequestError("Request must be a JSON object")

    logger.debug(f"Parsed request: module={request.get('module')}, function={request.get('function')}")
    return request


def write_response(response: Dict[str, Any], stream=None) -> None:
    """Write JSON response to stdout"""
    out = stream or sys.stdout
    out.write(json.dumps(response, default=str, ensure_ascii=False, separators=(',', ':')) + '\n')
    out.flush()


def process_request(request: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and answer one request, never raising"""
    try:
        validate_request(request)

        response = handle_special_requests(request)
        if response is None:
            response = call_helper_function(request)

        return response
    except Exception as e:
        return format_error_response(e, request if isinstance(request, dict) else {})


def main() -> int:
    """Main entry point for the bridge script"""
    logging.basicConfig(
        level=logging.DEBUG if DEBUG > 0 else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        stream=sys.stderr
    )
    logger.debug(f"Starting perllib bridge v{__version__} at {datetime.now()}")

    setup_python_path()

    try:
        request = read_request()
    except BridgeRequestError as e:
        write_response(format_error_response(e, {}))
        return 1

    response = process_request(request)
    write_response(response)

    return 0 if response.get('success') else 1


if __name__ == "__main__":
    sys.exit(main())
