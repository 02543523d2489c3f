"""
Ограничение частоты запросов.

Попытки входа считаются по IP клиента в скользящем окне
(стратегия moving-window), хранилище счетчиков в памяти процесса.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, strategy="moving-window")
