import boto3
from botocore.exceptions import ClientError
from guardiao.config import settings
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def s3_configured() -> bool:
    return all([settings.aws_access_key_id, settings.aws_secret_access_key, settings.s3_bucket_name])


class S3DocumentStorage:
    def __init__(self):
        if not s3_configured():
            raise ValueError("AWS S3 credentials and bucket name must be configured")

        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name

    def upload_file(self, file_content: bytes, key: str, content_type: str) -> str:
        """Upload a document and return its public URL"""
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=file_content,
                ContentType=content_type
            )
            return f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com/{key}"
        except ClientError as e:
            logger.error(f"Failed to upload document to S3: {str(e)}")
            raise

    def delete_file(self, key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            logger.error(f"Failed to delete document from S3: {str(e)}")
            return False


class ParkingDocumentStorage:
    """
    Parking documents go to S3 when credentials are configured,
    otherwise to the public Supabase Storage bucket.
    """

    def __init__(self, supabase: Client, s3_storage: Optional[S3DocumentStorage] = None):
        self.supabase = supabase
        self.bucket = settings.parking_docs_bucket
        self.s3_storage = s3_storage
        if self.s3_storage is None and s3_configured():
            try:
                self.s3_storage = S3DocumentStorage()
                logger.info("S3 storage initialized for parking documents")
            except Exception as e:
                logger.warning(f"S3 storage initialization failed ({str(e)}), will use Supabase Storage")
                self.s3_storage = None

    def upload(self, file_content: bytes, key: str, content_type: str) -> str:
        if self.s3_storage:
            return self.s3_storage.upload_file(file_content, key, content_type)
        self.supabase.storage.from_(self.bucket).upload(
            key,
            file_content,
            file_options={"content-type": content_type}
        )
        return self.supabase.storage.from_(self.bucket).get_public_url(key)

    def delete(self, key: str) -> bool:
        if self.s3_storage:
            return self.s3_storage.delete_file(key)
        try:
            self.supabase.storage.from_(self.bucket).remove([key])
            return True
        except Exception as e:
            logger.warning(f"Failed to delete document from Supabase Storage ({key}): {e}")
            return False
