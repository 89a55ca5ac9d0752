import json

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, NoCredentialsError
from rich.console import Console

console = Console()


class S3Client:
    def __init__(self, config: dict):
        self.bucket = config["bucket_name"]
        self.region = config["aws_region"]
        timeout = float(config.get("store_timeout_seconds", 10))
        self.client = boto3.client(
            "s3",
            aws_access_key_id=config["aws_access_key"],
            aws_secret_access_key=config["aws_secret_key"],
            region_name=config["aws_region"],
            config=Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )

    def verify_connection(self) -> bool:
        try:
            self.client.list_buckets()
            return True
        except ClientError as e:
            # An AccessDenied error still means credentials are valid
            if e.response["Error"]["Code"] in ("AccessDenied", "403"):
                return True
            return False
        except NoCredentialsError:
            return False

    def ensure_bucket_exists(self) -> None:
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code in ("404", "NoSuchBucket"):
                console.print(
                    f"[yellow]Bucket '[cyan]{self.bucket}[/cyan]' not found. Creating it...[/yellow]"
                )
                try:
                    if self.region == "us-east-1":
                        self.client.create_bucket(Bucket=self.bucket)
                    else:
                        self.client.create_bucket(
                            Bucket=self.bucket,
                            CreateBucketConfiguration={"LocationConstraint": self.region},
                        )
                    console.print(
                        f"[green]Bucket '[cyan]{self.bucket}[/cyan]' created successfully.[/green]"
                    )
                except ClientError as create_error:
                    console.print(f"[red]Failed to create bucket: {create_error}[/red]")
                    raise
            else:
                console.print(f"[red]Error accessing bucket: {e}[/red]")
                raise

    def get_json(self, key: str) -> tuple[dict, str] | None:
        """Return (document, etag) for `key`, or None when the object does not exist."""
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                return None
            raise
        return json.loads(response["Body"].read()), response["ETag"]

    def put_json(
        self,
        key: str,
        document: dict,
        if_match: str | None = None,
        if_none_match: bool = False,
    ) -> None:
        """
        Write `document` to `key`.

        if_match only overwrites the version with that ETag; if_none_match only
        writes when no object exists yet. S3 answers a failed condition with
        PreconditionFailed (or ConditionalRequestConflict under contention).
        """
        kwargs = {}
        if if_match is not None:
            kwargs["IfMatch"] = if_match
        if if_none_match:
            kwargs["IfNoneMatch"] = "*"
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=json.dumps(document).encode(),
            ContentType="application/json",
            **kwargs,
        )

    def delete_object(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)

    def list_keys(self, prefix: str) -> list[str]:
        paginator = self.client.get_paginator("list_objects_v2")
        keys = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys
