from __future__ import annotations

from .mutation import ActivationFailed, MutationOutcome, ObjectMutator
from .naming import FUNCTION_GROUP_MAX_LENGTH, derive_function_group, function_group_name, normalize_name
from .parsing import ObjectReference
from .reader import RepositoryReader
from .reconciler import ObjectDescriptor, ObjectReconciler

__all__ = [
    "ActivationFailed",
    "FUNCTION_GROUP_MAX_LENGTH",
    "MutationOutcome",
    "ObjectDescriptor",
    "ObjectMutator",
    "ObjectReconciler",
    "ObjectReference",
    "RepositoryReader",
    "derive_function_group",
    "function_group_name",
    "normalize_name",
]
