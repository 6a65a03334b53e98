"""
dualbuild.infrastructure - Filesystem Substrate
=================================================

    artifact_set:  ArtifactSet and find(), the discovery/copy/filter
                   primitive every task builds on.
"""

from dualbuild.infrastructure.artifact_set import ArtifactSet, find

__all__ = ["ArtifactSet", "find"]
