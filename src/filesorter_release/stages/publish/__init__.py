from .naming import PublishedName, artifact_name, published_name
from .sinks import (
    DirectoryEphemeralSink,
    DirectoryReleaseSink,
    GitHubReleaseSink,
    PublishSinks,
    SinkHandle,
)
from .runner import publish_artifact
from .stage import stage_publish

__all__ = [
    "DirectoryEphemeralSink",
    "DirectoryReleaseSink",
    "GitHubReleaseSink",
    "PublishSinks",
    "PublishedName",
    "SinkHandle",
    "artifact_name",
    "publish_artifact",
    "published_name",
    "stage_publish",
]
