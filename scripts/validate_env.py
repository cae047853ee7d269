"""Validate the service environment before starting it.

Needs the `recall` package importable, so install the project first:

    pip install -e .
    python scripts/validate_env.py [--strict] [--check-connection]
"""
import os
import sys
import asyncio
import argparse
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / '.env')

from recall.providers import ProviderGateway, ProviderId, detect_provider

errors = []
warnings = []

parser = argparse.ArgumentParser()
parser.add_argument('--strict', '-s', action='store_true', help='Convert warnings to failures')
parser.add_argument('--check-connection', '-c', action='store_true', help='Send the connection probe to the configured provider')
args = parser.parse_args()
STRICT = args.strict

required = {
    'server': ['ENVIRONMENT', 'HOST', 'PORT'],
    'provider': ['RECALL_PROVIDER', 'RECALL_API_KEY', 'RECALL_MODEL'],
}

def check_presence(cat, keys):
    for k in keys:
        if not os.getenv(k):
            errors.append(f"{cat}: Missing {k}")

for cat, keys in required.items():
    check_presence(cat, keys)

# Format checks
try:
    port = int(os.getenv('PORT', '0'))
    if port < 1 or port > 65535:
        errors.append('PORT must be integer between 1 and 65535')
except ValueError:
    errors.append('PORT must be an integer')

provider = os.getenv('RECALL_PROVIDER', '')
if provider and provider not in [p.value for p in ProviderId]:
    errors.append(f"RECALL_PROVIDER must be one of {', '.join(p.value for p in ProviderId)}")

api_key = os.getenv('RECALL_API_KEY', '')
preset = detect_provider(api_key)
if api_key and provider and (preset is None or preset.provider.value != provider):
    warnings.append(f'RECALL_API_KEY does not look like a {provider} key; verify provider')

try:
    temperature = float(os.getenv('LLM_TEMPERATURE', '0.7'))
    if temperature < 0.0 or temperature > 2.0:
        errors.append('LLM_TEMPERATURE must be between 0.0 and 2.0')
except ValueError:
    errors.append('LLM_TEMPERATURE must be a float')

try:
    max_tokens = int(os.getenv('LLM_MAX_TOKENS', '4096'))
    if max_tokens < 1:
        errors.append('LLM_MAX_TOKENS must be a positive integer')
except ValueError:
    errors.append('LLM_MAX_TOKENS must be an integer')

log_format = os.getenv('LOG_FORMAT', 'json')
if log_format not in ('json', 'text'):
    warnings.append("LOG_FORMAT should be 'json' or 'text'")

# Log dir check
if os.getenv('LOG_TO_FILE', 'true').lower() in ('1', 'true', 'yes'):
    log_dir = Path(os.getenv('LOG_FILE_PATH', 'logs'))
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        if not os.access(log_dir, os.W_OK):
            errors.append(f'Log path not writable: {log_dir}')
        else:
            print(f'Log dir: {log_dir}')
    except OSError as e:
        errors.append(f'Failed to verify/create log dir: {e}')

# Provider connectivity (opt-in, sends one small request)
if args.check_connection and not errors:
    gateway = ProviderGateway.get_instance()
    if asyncio.run(gateway.test_connection()):
        print(f'{provider}: API reachable')
    else:
        errors.append(f'{provider}: connection probe failed')

if errors:
    print('\nENV validation failed:')
    for e in errors:
        print(' -', e)
    sys.exit(1)

if warnings:
    print('\nWarnings:')
    for w in warnings:
        print(' -', w)
    if STRICT:
        print('\nStrict mode enabled: treating warnings as errors')
        sys.exit(1)

print('\nAll critical validations passed')
sys.exit(0)
