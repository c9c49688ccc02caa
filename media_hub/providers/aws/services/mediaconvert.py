"""Transforms (job templates) and jobs on AWS Elemental MediaConvert."""

from __future__ import annotations

import logging
from typing import Optional

from botocore.exceptions import ClientError

from media_hub.core.errors import ConfigError
from media_hub.core.models.job_models import (
    JobError,
    JobHandle,
    JobOutputResult,
    JobState,
    JobStatus,
)
from media_hub.core.models.media_models import JobInputAsset, JobInputHttp
from media_hub.providers.aws.clients import mediaconvert_client
from media_hub.providers.aws.errors import is_not_found, remote_call, to_remote_error
from media_hub.providers.aws.services.presets import apply_hls_encryption, set_destination

logger = logging.getLogger(__name__)

STATE_MAP = {
    "SUBMITTED": JobState.QUEUED,
    "PROGRESSING": JobState.PROCESSING,
    "COMPLETE": JobState.FINISHED,
    "ERROR": JobState.ERROR,
    "CANCELED": JobState.CANCELED,
}

JOB_NAME_METADATA_KEY = "JobName"


def client(settings):
    return mediaconvert_client(settings)


def parse_job_status(job: dict) -> JobStatus:
    """Build a ``JobStatus`` from a MediaConvert ``Job`` description."""
    raw_status = job.get("Status", "SUBMITTED")
    state = STATE_MAP.get(raw_status)
    if state is None:
        raise ValueError(f"unknown MediaConvert job status: {raw_status}")

    progress = None
    if state is JobState.PROCESSING:
        progress = int(job.get("JobPercentComplete") or 0)

    error = None
    if state is JobState.ERROR:
        warnings = job.get("Messages", {}).get("Warning", []) or []
        error = JobError(
            code=str(job.get("ErrorCode", "")),
            message=job.get("ErrorMessage", ""),
            details=tuple(warnings),
        )

    groups = job.get("Settings", {}).get("OutputGroups", []) or []
    outputs = tuple(
        JobOutputResult(
            label=group.get("Name") or f"output-{index}",
            state=state,
            progress=progress,
            error=error,
        )
        for index, group in enumerate(groups)
    )
    return JobStatus(state=state, progress=progress, outputs=outputs, error=error)


class MediaConvertService:
    """Transform and job operations against one MediaConvert account endpoint."""

    def __init__(self, settings, mc_client=None):
        self.settings = settings
        self._client = mc_client

    @property
    def client(self):
        if self._client is None:
            self._client = client(self.settings)
        return self._client

    # -- transforms --

    def get_transform(self, name: str) -> Optional[dict]:
        try:
            resp = self.client.get_job_template(Name=name)
        except ClientError as exc:
            if is_not_found(exc):
                return None
            raise to_remote_error(exc, self.settings.profile) from exc
        return resp["JobTemplate"]

    def ensure_transform(self, name: str, output_groups: list, description: str = "") -> dict:
        """Return the named transform, creating it when missing.

        An existing transform with the same name is assumed to carry the same
        recipe.
        """
        transform = self.get_transform(name)
        if transform is not None:
            logger.debug("Transform %s already exists", name)
            return transform

        logger.info("Creating transform %s", name)
        with remote_call(self.settings.profile):
            resp = self.client.create_job_template(
                Name=name,
                Description=description,
                Settings={"OutputGroups": output_groups},
                StatusUpdateInterval="SECONDS_10",
            )
        return resp["JobTemplate"]

    def delete_transform(self, name: str) -> bool:
        try:
            self.client.delete_job_template(Name=name)
        except ClientError as exc:
            if is_not_found(exc):
                return False
            raise to_remote_error(exc, self.settings.profile) from exc
        return True

    # -- jobs --

    def _file_inputs(self, job_input, assets):
        if isinstance(job_input, JobInputHttp):
            return job_input.file_inputs()
        if isinstance(job_input, JobInputAsset):
            asset = assets.get_asset(job_input.asset_name)
            files = job_input.files or tuple(blob.name for blob in assets.list_blobs(asset.name))
            return [f"{asset.uri}{name}" for name in files]
        raise TypeError(f"unsupported job input: {type(job_input).__name__}")

    def submit_job(
        self,
        transform_name: str,
        job_name: str,
        job_input,
        output_asset,
        assets=None,
        correlation_data: Optional[dict] = None,
        hls_encryption: Optional[dict] = None,
    ) -> JobHandle:
        """Create a job from ``transform_name`` writing into ``output_asset``.

        The transform's output groups are copied into the job with their
        destination set to the asset, plus ``hls_encryption`` when given.
        """
        if not self.settings.role_arn:
            raise ConfigError("role_arn is required to submit MediaConvert jobs")

        transform = self.get_transform(transform_name)
        if transform is None:
            raise ValueError(f"transform not found: {transform_name}")

        file_inputs = self._file_inputs(job_input, assets)
        if not file_inputs:
            raise ValueError(f"job input has no files: {job_input}")

        output_groups = set_destination(
            transform.get("Settings", {}).get("OutputGroups", []), output_asset.uri
        )
        if hls_encryption:
            output_groups = apply_hls_encryption(output_groups, hls_encryption)
        metadata = {JOB_NAME_METADATA_KEY: job_name}
        if getattr(job_input, "label", None):
            metadata["InputLabel"] = job_input.label
        metadata.update(correlation_data or {})

        with remote_call(self.settings.profile):
            resp = self.client.create_job(
                Role=self.settings.role_arn,
                JobTemplate=transform_name,
                UserMetadata=metadata,
                StatusUpdateInterval="SECONDS_10",
                Settings={
                    "Inputs": [
                        {
                            "FileInput": uri,
                            "AudioSelectors": {
                                "Audio Selector 1": {"DefaultSelection": "DEFAULT"}
                            },
                        }
                        for uri in file_inputs
                    ],
                    "OutputGroups": output_groups,
                },
            )
        job_id = resp["Job"]["Id"]
        logger.info("Submitted job %s (%s) on transform %s", job_name, job_id, transform_name)
        return JobHandle(job_id=job_id, transform_name=transform_name, job_name=job_name)

    def describe_job(self, handle: JobHandle) -> dict:
        with remote_call(self.settings.profile):
            return self.client.get_job(Id=handle.job_id)["Job"]

    def get_job(self, handle: JobHandle) -> JobStatus:
        return parse_job_status(self.describe_job(handle))

    def cancel_job(self, handle: JobHandle) -> None:
        with remote_call(self.settings.profile):
            self.client.cancel_job(Id=handle.job_id)

    def list_jobs(self, transform_name: Optional[str] = None) -> list[JobHandle]:
        handles = []
        with remote_call(self.settings.profile):
            paginator = self.client.get_paginator("list_jobs")
            for page in paginator.paginate(Order="DESCENDING"):
                for job in page.get("Jobs", []):
                    if transform_name and job.get("JobTemplate") != transform_name:
                        continue
                    handles.append(
                        JobHandle(
                            job_id=job["Id"],
                            transform_name=job.get("JobTemplate"),
                            job_name=job.get("UserMetadata", {}).get(JOB_NAME_METADATA_KEY),
                        )
                    )
        return handles
