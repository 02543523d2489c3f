"""
Сервис для работы с хранилищами файлов.

Поддерживает локальное хранилище и Amazon S3 (или совместимые сервисы).
Каталог хранит только URL, который возвращает провайдер после сохранения.
"""

import logging
import shutil
import uuid
from abc import ABC, abstractmethod
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from boutique_admin.core.config import settings
from boutique_admin.core.errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)


class StorageProvider(ABC):
    """
    Абстрактный базовый класс для провайдеров хранилища.
    """

    @abstractmethod
    def save_file(
        self, file_path: str, file_data: BinaryIO, content_type: Optional[str] = None
    ) -> bool:
        pass

    @abstractmethod
    def get_file_url(self, file_path: str) -> str:
        pass

    @abstractmethod
    def delete_file(self, file_path: str) -> bool:
        pass

    @abstractmethod
    def path_from_url(self, url: str) -> Optional[str]:
        """Обратное преобразование URL -> путь в хранилище (None для чужих URL)."""


class LocalStorageProvider(StorageProvider):
    """
    Локальное хранилище файлов, раздаваемых через /static.
    """

    def __init__(self, base_path: Optional[str] = None, cdn_base_url: Optional[str] = None):
        self.base_path = Path(base_path or settings.STORAGE_PATH)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.root = self.base_path.resolve()
        self.url_prefix = (cdn_base_url if cdn_base_url is not None else settings.CDN_BASE_URL).rstrip("/")
        if not self.url_prefix:
            self.url_prefix = "/static"

    def _resolve(self, file_path: str) -> Optional[Path]:
        """Абсолютный путь внутри base_path или None, если путь выходит за его пределы."""
        full_path = (self.base_path / file_path).resolve()
        if full_path == self.root or not full_path.is_relative_to(self.root):
            logger.warning(f"LOCAL STORAGE: Path {file_path} is outside of {self.root}")
            return None
        return full_path

    def save_file(
        self, file_path: str, file_data: BinaryIO, content_type: Optional[str] = None
    ) -> bool:
        full_path = self._resolve(file_path)
        if full_path is None:
            return False
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)

            with open(full_path, "wb") as f:
                shutil.copyfileobj(file_data, f)

            logger.info(f"LOCAL STORAGE: File saved to {full_path}")
            return True
        except OSError as e:
            logger.error(f"LOCAL STORAGE: Error saving file {file_path}: {e}")
            return False

    def get_file_url(self, file_path: str) -> str:
        return f"{self.url_prefix}/{file_path.lstrip('/')}"

    def delete_file(self, file_path: str) -> bool:
        full_path = self._resolve(file_path)
        if full_path is None:
            return False
        try:
            if full_path.is_file():
                full_path.unlink()
                return True
            return False
        except OSError as e:
            logger.error(f"LOCAL STORAGE: Error deleting file {file_path}: {e}")
            return False

    def path_from_url(self, url: str) -> Optional[str]:
        prefix = f"{self.url_prefix}/"
        return url[len(prefix):] if url.startswith(prefix) else None


class S3StorageProvider(StorageProvider):
    """
    Amazon S3 хранилище (или совместимые сервисы, например MinIO).
    """

    def __init__(self, bucket_name: str, region: Optional[str] = None, endpoint_url: Optional[str] = None):
        self.bucket_name = bucket_name
        self.region = region or "us-east-1"
        self.endpoint_url = endpoint_url or None

        config = Config(
            retries={"max_attempts": 3, "mode": "adaptive"},
            connect_timeout=10,
            read_timeout=30,
            signature_version="s3v4",
            s3={"addressing_style": "path"},
        )

        self.s3_client = boto3.client(
            "s3",
            region_name=self.region,
            endpoint_url=self.endpoint_url,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            config=config,
        )

    def save_file(
        self, file_path: str, file_data: BinaryIO, content_type: Optional[str] = None
    ) -> bool:
        try:
            extra_args = {}
            if content_type:
                extra_args["ContentType"] = content_type

            # Читаем содержимое, чтобы указать ContentLength (важно для MinIO)
            file_data.seek(0)
            file_content = file_data.read()
            extra_args["ContentLength"] = len(file_content)

            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=file_path,
                Body=BytesIO(file_content),
                **extra_args,
            )
            logger.info(f"S3 STORAGE: File uploaded to {self.bucket_name}/{file_path}")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 STORAGE: Error saving file {file_path}: {e}")
            return False

    def get_file_url(self, file_path: str) -> str:
        if settings.CDN_BASE_URL:
            return f"{settings.CDN_BASE_URL.rstrip('/')}/{file_path.lstrip('/')}"
        base = (self.endpoint_url or f"https://s3.{self.region}.amazonaws.com").rstrip("/")
        return f"{base}/{self.bucket_name}/{file_path.lstrip('/')}"

    def delete_file(self, file_path: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=file_path)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 STORAGE: Error deleting file {file_path}: {e}")
            return False

    def path_from_url(self, url: str) -> Optional[str]:
        prefix = self.get_file_url("")
        return url[len(prefix):] if url.startswith(prefix) else None


def validate_image(filename: Optional[str], size: int) -> str:
    """
    Проверка загружаемого изображения по расширению и размеру.

    Returns:
        str: Расширение файла в нижнем регистре

    Raises:
        ValidationError: Недопустимый тип или слишком большой файл
    """
    extension = Path(filename or "").suffix.lower().lstrip(".")
    if extension not in settings.allowed_image_types:
        raise ValidationError(
            f"Unsupported image type '{extension or '?'}'. Allowed: {settings.ALLOWED_IMAGE_TYPES}"
        )
    if size <= 0:
        raise ValidationError("Empty file")
    if size > settings.MAX_IMAGE_SIZE:
        raise ValidationError(
            f"File too large: {size} bytes (max {settings.MAX_IMAGE_SIZE})"
        )
    return extension


def store_variant_image(
    storage: StorageProvider,
    product_id: int,
    variant_id: int,
    filename: Optional[str],
    data: bytes,
    content_type: Optional[str] = None,
) -> str:
    """
    Сохранить изображение варианта и вернуть его URL.

    Raises:
        ValidationError: Файл не прошел проверку
        PersistenceError: Хранилище не приняло файл
    """
    extension = validate_image(filename, len(data))
    file_path = f"products/{product_id}/{variant_id}/{uuid.uuid4().hex}.{extension}"
    if not storage.save_file(file_path, BytesIO(data), content_type):
        raise PersistenceError("Failed to store image")
    return storage.get_file_url(file_path)


@lru_cache(maxsize=1)
def get_storage() -> StorageProvider:
    """Провайдер хранилища согласно STORAGE_TYPE (создается один раз)."""
    if settings.STORAGE_TYPE == "s3":
        logger.info(f"Using S3 storage, bucket {settings.S3_BUCKET_NAME}")
        return S3StorageProvider(
            bucket_name=settings.S3_BUCKET_NAME,
            region=settings.AWS_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL,
        )
    logger.info(f"Using local storage at {settings.STORAGE_PATH}")
    return LocalStorageProvider()
