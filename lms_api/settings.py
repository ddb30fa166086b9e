# lms_api/settings.py

import os
from pathlib import Path
from datetime import timedelta

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# --- КЛЮЧЕВЫЕ НАСТРОЙКИ ДЛЯ ПРОДАКШЕНА ---

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-lms-dev-key')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.environ.get('DJANGO_DEBUG', 'False') == 'True'

ALLOWED_HOSTS_STR = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver')
if ALLOWED_HOSTS_STR == '*':
    ALLOWED_HOSTS = ['*']
else:
    ALLOWED_HOSTS = [host.strip() for host in ALLOWED_HOSTS_STR.split(',')]

CSRF_TRUSTED_ORIGINS = []
for host_str in ALLOWED_HOSTS:
    if host_str not in ['*', 'localhost', '127.0.0.1', 'testserver'] and not host_str.startswith('.'):
        CSRF_TRUSTED_ORIGINS.append(f"https://{host_str}")
        if DEBUG:
            CSRF_TRUSTED_ORIGINS.append(f"http://{host_str}")

# Порт, на котором `manage.py runapi` поднимает daphne
PORT = int(os.environ.get('PORT', 5000))


# Application definition
INSTALLED_APPS = [
    'daphne', # Должен быть первым для ASGI
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework_simplejwt',
    'django_filters',
    'corsheaders',
    'drf_spectacular',
    'users.apps.UsersConfig',
    'core.apps.CoreConfig',
    'edu_core.apps.EduCoreConfig',
    'news.apps.NewsConfig',
    'notifications.apps.NotificationsConfig',
    'stats.apps.StatsConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'core.middleware.SystemSettingsMiddleware',
]

ROOT_URLCONF = 'lms_api.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

ASGI_APPLICATION = 'lms_api.asgi.application'
WSGI_APPLICATION = 'lms_api.wsgi.application' # Для manage.py команд

# Database: PostgreSQL в продакшене, SQLite по умолчанию для локального запуска и тестов
DB_ENGINE = os.environ.get('DB_ENGINE', 'django.db.backends.sqlite3')

if DB_ENGINE == 'django.db.backends.sqlite3':
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.environ.get('DB_NAME', BASE_DIR / 'db.sqlite3'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.environ.get('DB_NAME', 'lms_db'),
            'USER': os.environ.get('DB_USER', 'lms_user'),
            'PASSWORD': os.environ.get('DB_PASSWORD', ''),
            'HOST': os.environ.get('DB_HOST', 'postgres'), # Имя сервиса Docker
            'PORT': os.environ.get('DB_PORT', '5432'),
        }
    }

# Password validation
AUTH_USER_MODEL = 'users.User'
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True

# Static files
STATIC_URL = '/static/'
STATIC_ROOT = os.environ.get('DJANGO_STATIC_ROOT', BASE_DIR / 'staticfiles_collected')

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# --- DRF Settings ---
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': ('rest_framework_simplejwt.authentication.JWTAuthentication',),
    'DEFAULT_PERMISSION_CLASSES': ('rest_framework.permissions.IsAuthenticated',),
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'DEFAULT_FILTER_BACKENDS': ['django_filters.rest_framework.DjangoFilterBackend'],
    'DEFAULT_THROTTLE_CLASSES': [
        'rest_framework.throttling.AnonRateThrottle',
        'rest_framework.throttling.UserRateThrottle'
    ],
    'DEFAULT_THROTTLE_RATES': {
        'anon': os.environ.get('DRF_THROTTLE_ANON_RATE', '1000/hour'),
        'user': os.environ.get('DRF_THROTTLE_USER_RATE', '10000/hour')
    },
    'DEFAULT_PAGINATION_CLASS': 'core.pagination.EnvelopePagination',
    'PAGE_SIZE': int(os.environ.get('DRF_PAGE_SIZE', 20)),
    'EXCEPTION_HANDLER': 'core.exceptions.custom_exception_handler',
    'TEST_REQUEST_DEFAULT_FORMAT': 'json',
}

# --- Simple JWT Settings ---
# Идентификатором в токене служит внешний userId, а не первичный ключ
SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=int(os.environ.get('JWT_ACCESS_TOKEN_LIFETIME_HOURS', 24))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=int(os.environ.get('JWT_REFRESH_TOKEN_LIFETIME_DAYS', 7))),
    'ROTATE_REFRESH_TOKENS': False,
    'UPDATE_LAST_LOGIN': True,
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': os.environ.get('DJANGO_JWT_SIGNING_KEY', SECRET_KEY), # ВАЖНО: Отдельный ключ в .env!
    'VERIFYING_KEY': None, 'AUDIENCE': None, 'ISSUER': None, 'JWK_URL': None, 'LEEWAY': 0,
    'AUTH_HEADER_TYPES': ('Bearer',),
    'AUTH_HEADER_NAME': 'HTTP_AUTHORIZATION',
    'USER_ID_FIELD': 'user_id',
    'USER_ID_CLAIM': 'userId',
    'USER_AUTHENTICATION_RULE': 'rest_framework_simplejwt.authentication.default_user_authentication_rule',
    'AUTH_TOKEN_CLASSES': ('rest_framework_simplejwt.tokens.AccessToken',),
    'TOKEN_TYPE_CLAIM': 'token_type',
    'JTI_CLAIM': 'jti',
}

# --- CORS Settings ---
CORS_ALLOWED_ORIGINS_STR = os.environ.get('CORS_ALLOWED_ORIGINS', 'http://localhost:3000,http://localhost:5173')
CORS_ALLOWED_ORIGINS = [origin.strip() for origin in CORS_ALLOWED_ORIGINS_STR.split(',')]
CORS_ALLOW_CREDENTIALS = True

# --- DRF Spectacular Settings ---
SPECTACULAR_SETTINGS = {
    'TITLE': os.environ.get('API_TITLE', 'Learning Management System API'),
    'DESCRIPTION': os.environ.get('API_DESCRIPTION', 'REST API для системы управления обучением'),
    'VERSION': os.environ.get('API_VERSION', '1.0.0'),
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
}

# --- Настройки системных операций ---
# Длительность имитации операций обслуживания (секунды)
MAINTENANCE_OPERATION_DELAYS = {
    'cleanup_logs': 2,
    'optimize_database': 3,
    'clear_cache': 1,
    'backup_database': 5,
}
SYSTEM_RESET_CONFIRMATION_CODE = os.environ.get('SYSTEM_RESET_CONFIRMATION_CODE', 'RESET_CONFIRM_2024')

# Учетная запись администратора, создаваемая командой seed_db
SEED_ADMIN_USER_ID = os.environ.get('SEED_ADMIN_USER_ID', 'ADMIN001')
SEED_ADMIN_EMAIL = os.environ.get('SEED_ADMIN_EMAIL', 'admin@lms.local')
SEED_ADMIN_PASSWORD = os.environ.get('SEED_ADMIN_PASSWORD', 'admin12345')

# --- Logging Settings ---
LOGS_DIR = BASE_DIR / ('logs_dev' if DEBUG else 'logs_prod')
LOGS_DIR.mkdir(parents=True, exist_ok=True)

APP_LOG_LEVEL = 'DEBUG' if DEBUG else 'INFO'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {name} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {asctime} {name} [{module}:{lineno:d}] {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'level': 'DEBUG' if DEBUG else 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
        'file_django': { # Отдельный файл для логов Django
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': LOGS_DIR / os.environ.get('DJANGO_LOG_FILENAME', 'django.log'),
            'maxBytes': 1024 * 1024 * 10,  # 10 MB
            'backupCount': 5,
            'formatter': 'verbose',
        },
        'file_app': { # Отдельный файл для логов приложений
            'level': APP_LOG_LEVEL,
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': LOGS_DIR / os.environ.get('APP_LOG_FILENAME', 'app.log'),
            'maxBytes': 1024 * 1024 * 10,  # 10 MB
            'backupCount': 5,
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console', 'file_django'],
            'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'django.request': {
            'handlers': ['file_django'],
            'level': 'WARNING',
            'propagate': False,
        },
        'django.security': {
            'handlers': ['file_django'],
            'level': 'WARNING',
            'propagate': False,
        },
        'users': {'handlers': ['console', 'file_app'], 'level': APP_LOG_LEVEL, 'propagate': False},
        'core': {'handlers': ['console', 'file_app'], 'level': APP_LOG_LEVEL, 'propagate': False},
        'edu_core': {'handlers': ['console', 'file_app'], 'level': APP_LOG_LEVEL, 'propagate': False},
        'news': {'handlers': ['console', 'file_app'], 'level': APP_LOG_LEVEL, 'propagate': False},
        'notifications': {'handlers': ['console', 'file_app'], 'level': APP_LOG_LEVEL, 'propagate': False},
        'stats': {'handlers': ['console', 'file_app'], 'level': APP_LOG_LEVEL, 'propagate': False},
        'daphne': {'handlers': ['console', 'file_django'], 'level': 'INFO', 'propagate': False},
    },
    'root': {
        'handlers': ['console'] if DEBUG else [],
        'level': 'WARNING',
    }
}
