import os
import sys

# Добавляем корень репозитория в PYTHONPATH, чтобы 'import agenda...' работал
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Тестовое окружение: in-memory SQLite, in-process store и канал изменений
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("EVENT_STORE", "memory")
os.environ.setdefault("CHANGE_CHANNEL", "memory")
