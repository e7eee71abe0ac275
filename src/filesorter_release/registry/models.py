from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator

OsId = Annotated[
    str,
    StringConstraints(min_length=1, max_length=80, pattern=r"^[A-Za-z0-9][A-Za-z0-9_\-\.]*$"),
]
Channel = Annotated[
    str,
    StringConstraints(min_length=1, max_length=60, pattern=r"^[A-Za-z0-9][A-Za-z0-9_\-\.]*$"),
]
PlatformSlug = Annotated[
    str,
    StringConstraints(min_length=1, max_length=60, pattern=r"^[a-z0-9][a-z0-9_\-]*$"),
]


class OsFamily(StrEnum):
    linux = "linux"
    windows = "windows"
    macos = "macos"


class TargetSpec(BaseModel):
    """
    One row of the OS join table: how to name the build output of an OS.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    os_id: OsId = Field(..., examples=["ubuntu-latest"])
    family: OsFamily
    artifact_filename: str = Field(..., min_length=1, examples=["filesorter.exe"])
    platform_slug: PlatformSlug = Field(..., examples=["windows-amd64"])


class BuildSpec(BaseModel):
    """
    Compiler invocation. Strings may use {channel}, {os}, {platform_slug},
    {artifact_filename}, {target_dir} and {source_dir}.

    A cell only builds on a host of its own OS family unless `cross_compile`
    is set, i.e. the command itself produces binaries for every family.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    command: list[str] = Field(
        default_factory=lambda: ["cargo", "+{channel}", "build", "--release", "--verbose"],
        min_length=1,
    )
    env: dict[str, str] = Field(
        default_factory=lambda: {"CARGO_TARGET_DIR": "{target_dir}"}
    )
    output: str = Field(default="{target_dir}/release/{artifact_filename}", min_length=1)
    timeout_s: Optional[float] = Field(default=3600.0, gt=0)
    cross_compile: bool = False


class PostProcessSpec(BaseModel):
    """
    Tools used by the post-processing table. {path} is the binary.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    strip_command: list[str] = Field(
        default_factory=lambda: ["strip", "{path}"], min_length=1
    )
    timeout_s: Optional[float] = Field(default=300.0, gt=0)


class ReleaseConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    spec_version: int = Field(..., ge=1)
    artifact_base: str = Field(..., min_length=1, examples=["filesorter"])

    os: list[OsId] = Field(..., min_length=1)
    channels: list[Channel] = Field(..., min_length=1)
    targets: list[TargetSpec] = Field(..., min_length=1)

    build: BuildSpec = Field(default_factory=BuildSpec)
    postprocess: PostProcessSpec = Field(default_factory=PostProcessSpec)

    @model_validator(mode="after")
    def _validate(self) -> "ReleaseConfig":
        os_ids = [t.os_id for t in self.targets]
        if len(os_ids) != len(set(os_ids)):
            raise ValueError("Duplicate os_id in targets")

        slugs = [t.platform_slug for t in self.targets]
        if len(slugs) != len(set(slugs)):
            dupes = sorted({s for s in slugs if slugs.count(s) > 1})
            raise ValueError(f"Duplicate platform_slug in targets: {dupes}")

        return self
