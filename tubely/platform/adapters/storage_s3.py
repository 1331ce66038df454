import logging
from typing import BinaryIO
import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from tubely.platform.ports.object_storage import ObjectStoragePort
from tubely.core.config import settings
from tubely.core.errors import StorageError

log = logging.getLogger("storage.s3")

class S3Storage(ObjectStoragePort):
    def __init__(self, client=None, bucket: str | None = None):
        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=settings.S3_ACCESS_KEY,
                aws_secret_access_key=settings.S3_SECRET_KEY,
                region_name=settings.S3_REGION,
            )
            client = session.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL,
                config=Config(
                    signature_version="s3v4",
                    connect_timeout=10,
                    read_timeout=60,
                    retries={"max_attempts": 3, "mode": "standard"},
                ),
            )
        self.s3 = client
        self.bucket = bucket or settings.S3_BUCKET

    def put_object(self, key: str, body: BinaryIO, content_type: str) -> None:
        # upload_fileobj reads the file in parts; the payload is never held in memory whole.
        try:
            self.s3.upload_fileobj(body, self.bucket, key, ExtraArgs={"ContentType": content_type})
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Couldn't upload {key} to bucket {self.bucket}: {e}") from e
        log.info(f"Stored s3://{self.bucket}/{key} ({content_type})")

    def delete(self, key: str) -> None:
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Couldn't delete {key} from bucket {self.bucket}: {e}") from e
        log.info(f"Deleted s3://{self.bucket}/{key}")

    def locator_for(self, key: str) -> str:
        if settings.S3_PUBLIC_BASE_URL:
            return f"{settings.S3_PUBLIC_BASE_URL.rstrip('/')}/{key}"
        if settings.S3_ENDPOINT_URL:
            return f"{settings.S3_ENDPOINT_URL.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{settings.S3_REGION}.amazonaws.com/{key}"

