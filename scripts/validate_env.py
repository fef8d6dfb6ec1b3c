import os
import sys
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / '.env')

errors = []
warnings = []

import argparse

parser = argparse.ArgumentParser()
parser.add_argument('--strict', '-s', action='store_true', help='Convert warnings to failures')
args = parser.parse_args()
STRICT = args.strict

required = {
    'server': ['ENVIRONMENT', 'HOST', 'PORT'],
    'openai': ['OPENAI_API_KEY'],
    'database': ['DB_HOST', 'DB_PORT', 'DB_NAME', 'DB_USER', 'DB_PASSWORD'],
}

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

openai_key = os.getenv('OPENAI_API_KEY', '')
if openai_key and not openai_key.startswith('sk-'):
    warnings.append('OPENAI_API_KEY does not start with sk-; verify provider')

try:
    size = int(os.getenv('STUDY_SET_SIZE', '5'))
    if size < 1 or size > 20:
        errors.append('STUDY_SET_SIZE must be between 1 and 20')
except ValueError:
    errors.append('STUDY_SET_SIZE must be an integer')

for var in ('GENERATION_TEMPERATURE', 'NAMING_TEMPERATURE', 'INFERENCE_TEMPERATURE'):
    try:
        t = float(os.getenv(var, '0.5'))
        if t < 0.0 or t > 2.0:
            errors.append(f'{var} must be between 0.0 and 2.0')
    except ValueError:
        errors.append(f'{var} must be a float')

if not os.getenv('OPENAI_LIGHT_MODEL'):
    warnings.append('OPENAI_LIGHT_MODEL not set; naming and subject inference use gpt-3.5-turbo')

try:
    from openai import OpenAI
    if openai_key:
        try:
            client = OpenAI(api_key=openai_key)
            client.models.list()
            print('OpenAI: API reachable')
        except Exception as e:
            warnings.append(f'OpenAI check failed: {e}')
except ImportError:
    warnings.append('openai package not available; skipping OpenAI check')

try:
    import psycopg2
    conn = psycopg2.connect(host=os.getenv('DB_HOST'),
                            port=int(os.getenv('DB_PORT', '5432')),
                            dbname=os.getenv('DB_NAME'),
                            user=os.getenv('DB_USER'),
                            password=os.getenv('DB_PASSWORD'))
    cur = conn.cursor()
    cur.execute("SELECT to_regclass('public.study_sets'), to_regclass('public.quiz_questions'), to_regclass('public.categories'), to_regclass('public.subjects')")
    missing = [name for name, found in zip(('study_sets', 'quiz_questions', 'categories', 'subjects'), cur.fetchone()) if not found]
    if missing:
        warnings.append(f"Postgres tables missing: {', '.join(missing)} (run scripts/init_db.py)")
    else:
        print('Postgres: OK')
    cur.close(); conn.close()
except Exception as e:
    errors.append(f'Postgres connection failed: {e}')

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
