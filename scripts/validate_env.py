import os
import sys
import argparse
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / '.env')

errors = []
warnings = []

parser = argparse.ArgumentParser()
parser.add_argument('--strict', '-s', action='store_true', help='Convert warnings to failures')
args = parser.parse_args()
STRICT = args.strict

required = {
    'server': ['ENVIRONMENT', 'HOST', 'PORT'],
    'storage': ['STORAGE_BACKEND'],
}

MODES = ('mock', 'free', 'offline', 'custom')
BACKENDS = ('memory', 'file', 'redis')


def check_presence(cat, keys):
    for k in keys:
        if not os.getenv(k):
            errors.append(f"{cat}: Missing {k}")


for cat, keys in required.items():
    check_presence(cat, keys)

try:
    port = int(os.getenv('PORT', '0'))
    if port < 1 or port > 65535:
        errors.append('PORT must be integer between 1 and 65535')
except ValueError:
    errors.append('PORT must be an integer')

mode = os.getenv('DEFAULT_MODE', 'offline').lower()
if mode not in MODES:
    errors.append(f"DEFAULT_MODE must be one of {'|'.join(MODES)}")

backend = os.getenv('STORAGE_BACKEND', 'file').lower()
if backend not in BACKENDS:
    errors.append(f"STORAGE_BACKEND must be one of {'|'.join(BACKENDS)}")

for name, default in (('DAILY_QUOTA', '50'), ('MONTHLY_QUOTA', '1000')):
    try:
        if int(os.getenv(name, default)) < 0:
            errors.append(f'{name} must not be negative')
    except ValueError:
        errors.append(f'{name} must be an integer')

openai_key = os.getenv('OPENAI_API_KEY', '')
if mode in ('free', 'custom') and not openai_key:
    warnings.append(f'DEFAULT_MODE={mode} but OPENAI_API_KEY is empty; generation will fall back to mock')
if openai_key and not openai_key.startswith('sk-'):
    warnings.append('OPENAI_API_KEY does not start with sk-; verify provider')
if mode == 'custom' and not os.getenv('OPENAI_BASE_URL'):
    errors.append('custom: OPENAI_BASE_URL not set')

# OpenAI check - use 1.x client API (OpenAI)
try:
    from openai import OpenAI
    if openai_key:
        try:
            client = OpenAI(api_key=openai_key, base_url=os.getenv('OPENAI_BASE_URL') or None)
            client.models.list()
            print('OpenAI: API reachable')
        except Exception as e:
            warnings.append(f'OpenAI check failed: {e}')
except Exception:
    warnings.append('openai package not available or client error; skipping OpenAI check')

if backend == 'redis':
    try:
        import redis
        r = redis.Redis(host=os.getenv('REDIS_HOST', 'redis'), port=int(os.getenv('REDIS_PORT', '6379')), password=os.getenv('REDIS_PASSWORD') or None)
        if r.ping():
            print('Redis: OK')
    except Exception as e:
        warnings.append(f'Redis check failed: {e}; the service will use the in-memory store')

if backend == 'file':
    storage_path = Path(os.getenv('STORAGE_PATH', 'data/study_engine.json'))
    try:
        storage_path.parent.mkdir(parents=True, exist_ok=True)
        if not os.access(storage_path.parent, os.W_OK):
            errors.append(f'Storage directory not writable: {storage_path.parent}')
        else:
            print(f'Storage file: {storage_path}')
    except Exception as e:
        errors.append(f'Failed to verify/create storage dir: {e}')

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
