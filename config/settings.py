"""
Django settings for the digital employee service.
"""

import os
from pathlib import Path

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.environ.get(
    'DJANGO_SECRET_KEY',
    'django-insecure-0c9y#m1v!d2b7w@k4p8e$q5r3t6u_z(j)h-n+x=s&a%f^g*l'
)

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.environ.get('DJANGO_DEBUG', 'True') == 'True'

ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost 127.0.0.1 [::1] testserver').split()

# Application definition
INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    # Local apps
    'employee',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

WSGI_APPLICATION = 'config.wsgi.application'

# Database – PostgreSQL in production, SQLite for local development
_db_engine = os.environ.get('DB_ENGINE', 'sqlite3')
if _db_engine == 'postgresql':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ.get('DB_NAME', 'employee'),
            'USER': os.environ.get('DB_USER', 'employee'),
            'PASSWORD': os.environ.get('DB_PASSWORD', ''),
            'HOST': os.environ.get('DB_HOST', 'localhost'),
            'PORT': os.environ.get('DB_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

# Internationalization
LANGUAGE_CODE = 'tr'
TIME_ZONE = 'Europe/Istanbul'
USE_I18N = True
USE_TZ = True

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ---------------------------------------------------------------------------
# Response cache – generated text keyed by hash(prompt, model)
# ---------------------------------------------------------------------------
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    },
    'ai_responses': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'ai-responses',
        'OPTIONS': {'MAX_ENTRIES': int(os.environ.get('AI_CACHE_MAX_ENTRIES', '1000'))},
    },
}

AI_CACHE_TTL_PLAYBOOK = int(os.environ.get('AI_CACHE_TTL_PLAYBOOK', str(24 * 60 * 60)))
AI_CACHE_TTL_CHAT = int(os.environ.get('AI_CACHE_TTL_CHAT', '300'))

# ---------------------------------------------------------------------------
# OpenAI provider
# ---------------------------------------------------------------------------
OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY', '')
OPENAI_ORGANIZATION = os.environ.get('OPENAI_ORGANIZATION', '')
OPENAI_TIMEOUT = float(os.environ.get('OPENAI_TIMEOUT', '30'))
OPENAI_MAX_RETRIES = int(os.environ.get('OPENAI_MAX_RETRIES', '2'))

AI_DEFAULT_MODEL = os.environ.get('AI_DEFAULT_MODEL', 'gpt-4o-mini')
AI_CHAT_MAX_TOKENS = int(os.environ.get('AI_CHAT_MAX_TOKENS', '1000'))
AI_PLAYBOOK_MAX_TOKENS = int(os.environ.get('AI_PLAYBOOK_MAX_TOKENS', '4000'))

# USD per 1M tokens. Dated snapshots (e.g. gpt-4o-mini-2024-07-18) match by prefix.
AI_MODEL_PRICING = {
    'gpt-4o-mini': {'input': '0.15', 'output': '0.60'},
    'gpt-4o': {'input': '2.50', 'output': '10.00'},
    'gpt-4.1-mini': {'input': '0.40', 'output': '1.60'},
    'gpt-4.1': {'input': '2.00', 'output': '8.00'},
    'gpt-3.5-turbo': {'input': '0.50', 'output': '1.50'},
}

# Web search tool: upper bound on sources per call
WEB_SEARCH_MAX_RESULTS = int(os.environ.get('WEB_SEARCH_MAX_RESULTS', '3'))

# Usage meter ring buffer size
USAGE_METER_MAX_ENTRIES = int(os.environ.get('USAGE_METER_MAX_ENTRIES', '10000'))

# Agent profiles (YAML)
PROFILES_DIR = Path(os.environ.get('PROFILES_DIR', str(BASE_DIR / 'profiles')))

# ---------------------------------------------------------------------------
# Logging – one file per day, 7-day retention, stored in ./logs/
# ---------------------------------------------------------------------------
LOGS_DIR = BASE_DIR / 'logs'
LOGS_DIR.mkdir(exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} [{levelname}] {name} {module}.{funcName}:{lineno} – {message}',
            'style': '{',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
        'simple': {
            'format': '{asctime} [{levelname}] {message}',
            'style': '{',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
            'level': 'DEBUG',
        },
        'file_debug': {
            'class': 'logging.handlers.TimedRotatingFileHandler',
            'filename': str(LOGS_DIR / 'app.log'),
            'when': 'midnight',
            'interval': 1,
            'backupCount': 7,
            'encoding': 'utf-8',
            'formatter': 'verbose',
            'level': 'DEBUG',
        },
    },
    'root': {
        'handlers': ['console', 'file_debug'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console', 'file_debug'],
            'level': 'INFO',
            'propagate': False,
        },
        'employee': {
            'handlers': ['console', 'file_debug'],
            'level': os.environ.get('EMPLOYEE_LOG_LEVEL', 'DEBUG'),
            'propagate': False,
        },
        'openai': {
            'handlers': ['console', 'file_debug'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
}
