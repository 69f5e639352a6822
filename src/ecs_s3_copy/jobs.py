# src/ecs_s3_copy/jobs.py
"""
Typed job definitions handed from the enumerator to the dispatcher.

Every job variant describes one remote operation applied to each key of a
batch. Copy is currently the only variant; new operations are added as new
job classes and included in the `Job` union.
"""

from dataclasses import dataclass
from typing import Tuple, Union

from ecs_s3_copy.config import CopyJobConfig

ObjectKey = str


@dataclass(frozen=True)
class CopyObjectJob:
    """
    Server-side copy of each key from the source to the target bucket.

    Attributes:
        config (CopyJobConfig): Buckets, prefixes and retry budget of the run.
    """

    config: CopyJobConfig

    @property
    def acl(self) -> str:
        return self.config.acl

    @property
    def metadata_directive(self) -> str:
        return self.config.metadata_directive

    def target_key(self, key: ObjectKey) -> ObjectKey:
        """
        Builds the destination key of a source key.

        The target prefix is prepended as-is, without path normalization.

        Args:
            key (ObjectKey): The source object key.

        Returns:
            ObjectKey: The key of the copy in the target bucket.
        """
        return self.config.target_prefix + key


Job = Union[CopyObjectJob]


@dataclass(frozen=True)
class Batch:
    """
    The keys discovered in one enumeration page and the job to run on them.

    Attributes:
        keys (Tuple[ObjectKey, ...]): The keys, in the order the store returned them.
        job (Job): The operation to perform on every key.
    """

    keys: Tuple[ObjectKey, ...]
    job: Job

    def __len__(self) -> int:
        return len(self.keys)
