# SPDX-License-Identifier: MIT
"""Dependency-graph analysis for binary substitution.

Given the targets requested for substitution, the analyzer finds their
consumers ("binary users"), keeps as source every requested target that
produces a resource bundle a dynamic framework consumer embeds, binds
the remaining targets to their prebuilt artifacts and produces one
SubstitutionPlan per consumer.

Exclusions are recomputed from the current graph on every run and never
cached.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from binswap.core.context import SubstitutionContext, SubstitutionPlan
from binswap.core.interfaces import ArtifactResolver, ProjectModel
from binswap.core.parallel import parallel_flat_map, parallel_map
from binswap.core.target import ProductType, Target

logger = logging.getLogger(__name__)


@dataclass
class SubstitutionAnalysis:
    """Result of analyzing a candidate set.

    Attributes:
        binarizable: Targets that will be replaced by binaries.
        excluded: Candidates kept as source (resource bundle producers).
        plans: Substitution plan per consumer name.
        context: Derived data of this run.
    """

    binarizable: dict[str, Target]
    excluded: dict[str, Target]
    plans: dict[str, SubstitutionPlan]
    context: SubstitutionContext


class GraphAnalyzer:
    """Computes binary users, exclusions and substitution plans."""

    def __init__(
        self,
        project: ProjectModel,
        store: ArtifactResolver,
        *,
        jobs: int | None = None,
    ) -> None:
        self._project = project
        self._store = store
        self._jobs = jobs

    def find_binary_users(
        self,
        binary_targets: Mapping[str, Target],
        context: SubstitutionContext,
    ) -> dict[str, Target]:
        """Find every target that depends on one of binary_targets.

        The whole project is scanned, not only the candidates. Each
        user's intersecting dependencies are recorded in context.
        """
        users: dict[str, Target] = {}
        for name, target in self._project.find_targets().items():
            if name in binary_targets:
                continue
            deps = {
                dep: binary_targets[dep]
                for dep in target.dependencies
                if dep in binary_targets
            }
            if deps:
                context.set_binary_dependencies(target, deps)
                users[name] = target
        return users

    def resource_bundle_exclusions(
        self,
        users: Mapping[str, Target],
        binary_targets: Mapping[str, Target],
    ) -> dict[str, Target]:
        """Find the binary targets producing bundles framework users embed."""

        def scan(user: Target) -> list[tuple[str, Target]]:
            if user.product is None or user.product.type is not ProductType.FRAMEWORK:
                return []
            bundle_names = user.resource_bundle_names()
            if not bundle_names:
                return []
            return [
                (name, target)
                for name, target in binary_targets.items()
                if target.product is not None and target.product.name in bundle_names
            ]

        return dict(parallel_flat_map(scan, users.values(), jobs=self._jobs))

    def analyze(self, candidates: Mapping[str, Target]) -> SubstitutionAnalysis:
        """Produce the final binarizable set and per-consumer plans.

        Raises:
            ArtifactNotFoundError: If a target of the final set has no
                prebuilt artifact.
        """
        context = SubstitutionContext()
        binarizable = dict(candidates)
        excluded: dict[str, Target] = {}

        # An excluded target stays as source and may itself consume
        # binaries, so rescan until the set is stable.
        while True:
            context.clear()
            users = self.find_binary_users(binarizable, context)
            found = self.resource_bundle_exclusions(users, binarizable)
            if not found:
                break
            logger.info(
                "Keeping resource bundle targets as source: %s",
                ", ".join(sorted(found)),
            )
            excluded.update(found)
            binarizable = {n: t for n, t in binarizable.items() if n not in found}

        targets = list(binarizable.values())
        paths = parallel_map(self._store.resolve_artifact_path, targets, jobs=self._jobs)
        for target, path in zip(targets, paths):
            context.bind(target, path)

        plans = {name: context.plan_for(user) for name, user in users.items()}
        logger.debug(
            "%d binary target(s), %d user(s), %d excluded",
            len(binarizable),
            len(plans),
            len(excluded),
        )
        return SubstitutionAnalysis(binarizable, excluded, plans, context)
