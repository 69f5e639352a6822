# src/ecs_s3_copy/__init__.py
"""
ecs-s3-copy: A bulk server-side copier between buckets of an ECS object store.

This package copies every object of a source bucket, optionally restricted to
a key prefix or to the results of an ECS metadata search query, into a target
bucket. Pages of keys are copied concurrently, one page at a time, with a
fixed retry budget per object.

The primary entry point for programmatic use is the `CopyBucketPipeline` class.
"""

from typing import List

from ecs_s3_copy.pipeline import CopyBucketPipeline

__all__: List[str] = ["CopyBucketPipeline"]
