"""Batched, dependency-ordered publish of workspace packages."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from ..checks import resolve_registry, validate_options, verify_registry_access, verify_working_tree_clean
from ..errors import GitError, RegistryError
from ..git import GitClient
from ..graph.batch import batch_packages, flatten_batches, single_batch
from ..graph.graph import RUNTIME_EDGES, PackageGraph
from ..graph.package import PackageNode
from ..graph.workspace import Project, filter_packages
from ..licenses import create_temp_licenses, packages_without_license, remove_temp_licenses, warn_unlicensed
from ..lifecycle import LifecycleRunner, find_package_script
from ..registry.access import AccessClient
from ..registry.adapters import RegistryAdapter, format_packed
from ..rewriters import annotate_git_head, resolve_local_dependency_links, serialize_changes, update_canary_versions
from ..schemas.options import TEMP_DIST_TAG, PublishOptions, resolve_dist_tag
from ..utils import pack_location, pluralize
from .models import PackageResult, PublishReport, RunState
from .pool import run_batches
from .stages import StageSpec, included_stages, run_stages

logger = logging.getLogger(__name__)

ROOT_PACK_LIFECYCLES = ("prepare", "prepublishOnly", "prepack")


class PublishCommand:
    """Publish every selected, non-private package of a workspace.

    Collaborators are injected so the pipeline can run against the npm CLI,
    an in-memory registry, or test doubles.
    """

    def __init__(
        self,
        project: Project,
        graph: PackageGraph,
        options: PublishOptions,
        *,
        registry: RegistryAdapter,
        git: Optional[GitClient] = None,
        access: Optional[AccessClient] = None,
        lifecycle: Optional[LifecycleRunner] = None,
    ) -> None:
        validate_options(options)
        self.options = resolve_registry(options)
        self.project = project
        self.graph = graph
        self.registry = registry
        self.git = git
        self.access = access
        self.lifecycle = lifecycle or LifecycleRunner(active_event=self.options.lifecycle_event)
        self.state = self._initialize()

    def _initialize(self) -> RunState:
        options = self.options
        if options.canary:
            logger.info("canary enabled")
        if options.require_scripts:
            logger.info("require-scripts enabled")

        # a "rooted leaf" is the project root listed as one of its own packages
        has_rooted_leaf = self.graph.has(self.project.manifest.name)
        if has_rooted_leaf:
            logger.info("rooted leaf detected, skipping synthetic root lifecycles")

        packages = [
            pkg for pkg in filter_packages(self.graph, options.scope, options.ignore) if not pkg.private
        ]
        if options.no_sort:
            batches = single_batch(packages)
        else:
            # devDependencies have no runtime resolution impact and would only add cycles
            batches = batch_packages(packages, self.graph, RUNTIME_EDGES, reject_cycles=options.reject_cycles)

        return RunState(
            options=options,
            project=self.project,
            graph=self.graph,
            packages=flatten_batches(batches),
            batches=batches,
            has_rooted_leaf=has_rooted_leaf,
        )

    def stages(self) -> List[StageSpec[RunState]]:
        return [
            StageSpec("verify-access", self.prepare_registry_actions),
            StageSpec("license-prep", self.prepare_license_actions),
            StageSpec("verify-working-tree", self.verify_working_tree_clean),
            StageSpec("canary-versions", self.update_canary_versions, when=lambda s: s.options.canary),
            StageSpec("local-links", self.resolve_local_dependency_links),
            StageSpec("git-head", self.annotate_git_head),
            StageSpec("serialize", self.serialize_changes),
            StageSpec("pack", self.pack_updated),
            StageSpec("publish", self.publish_packed),
            StageSpec(
                "git-reset",
                self.reset_changes,
                when=lambda s: s.options.git_reset and s.manifests_written,
                cleanup=True,
            ),
            StageSpec("dist-tag", self.promote_dist_tags, when=lambda s: s.options.temp_tag),
        ]

    def planned_stages(self) -> List[str]:
        return included_stages(self.stages(), self.state)

    def execute(self) -> PublishReport:
        state = self.state
        if not state.packages:
            logger.warning("No packages selected for publishing")
            return PublishReport(packages=[])

        count = len(state.packages)
        logger.info("Publishing %d %s to %s", count, pluralize(count, "package"), self.options.effective_registry)
        completed = run_stages(self.stages(), state)

        report = PublishReport(packages=state.ordered_results(), stages=completed, git_head=state.git_head)
        logger.info("Successfully published:\n%s", os.linesep.join(report.summary_lines()))
        logger.info("published %d %s", report.count, pluralize(report.count, "package"))
        return report

    # -- preconditions ---------------------------------------------------------------

    def prepare_registry_actions(self, state: RunState) -> None:
        state.username = verify_registry_access(state.options, state.packages, self.access)

    def prepare_license_actions(self, state: RunState) -> None:
        unlicensed = packages_without_license(state.packages, state.options.contents)
        if unlicensed and not self.project.license_path:
            state.packages_to_license = []
            warn_unlicensed(unlicensed)
        else:
            state.packages_to_license = unlicensed

    def verify_working_tree_clean(self, state: RunState) -> None:
        if self.git is None:
            logger.warning("No git client configured, skipping working tree verification")
            return
        verify_working_tree_clean(self.git)

    # -- rewriters -------------------------------------------------------------------

    def update_canary_versions(self, state: RunState) -> None:
        for change in update_canary_versions(state.packages, state.graph, state.options.save_prefix):
            logger.debug("canary: %s", change)

    def resolve_local_dependency_links(self, state: RunState) -> None:
        for change in resolve_local_dependency_links(state.packages, state.graph, state.options.save_prefix):
            logger.debug("link: %s", change)

    def annotate_git_head(self, state: RunState) -> None:
        state.git_head = annotate_git_head(state.packages, self.git, state.options.git_head)

    def serialize_changes(self, state: RunState) -> None:
        state.manifests_written = True
        serialize_changes(state.packages)

    # -- pack ------------------------------------------------------------------------

    def pack_updated(self, state: RunState) -> None:
        root = self.project.manifest
        contents = state.options.contents
        try:
            state.temp_licenses = create_temp_licenses(self.project.license_path, state.packages_to_license, contents)
            if not state.has_rooted_leaf:
                # deprecated, but still honoured
                self.lifecycle.run_root(root, "prepublish")
                for stage in ROOT_PACK_LIFECYCLES:
                    self.lifecycle.run(root, stage)

            state.pack_destination = Path(tempfile.mkdtemp(prefix="monorepo-publish-"))
            run_batches(
                state.batches,
                state.options.effective_pack_concurrency,
                lambda pkg: self._pack_one(state, pkg),
                stage="pack",
                on_failure=lambda pkg, exc: state.record(pkg, "failed", error=str(exc)),
            )
            remove_temp_licenses(state.temp_licenses)
        except BaseException:
            self._remove_temp_licenses_on_error(state)
            raise

        if not state.has_rooted_leaf:
            self.lifecycle.run(root, "postpack")

    def _pack_one(self, state: RunState, pkg: PackageNode) -> PackageResult:
        if state.options.require_scripts:
            script = find_package_script(pkg, "prepublish")
            if script is not None:
                script.run()

        location = pack_location(pkg, state.options.contents)
        pkg.packed = self.registry.pack(pkg, location, state.pack_destination or location)
        logger.debug("packed %s (%s)", pkg.name, os.path.relpath(location, self.project.root_path))
        # manifest may have been mutated by a lifecycle script
        pkg.refresh()
        return state.record(pkg, "packed")

    def _remove_temp_licenses_on_error(self, state: RunState) -> None:
        try:
            remove_temp_licenses(state.temp_licenses)
        except OSError as exc:
            logger.error("error removing temporary license files: %s", exc)

    # -- publish ---------------------------------------------------------------------

    def publish_tag(self, pkg: PackageNode) -> str:
        if self.options.temp_tag:
            return TEMP_DIST_TAG
        return resolve_dist_tag(self.options.global_dist_tag, pkg.publish_config)

    def publish_packed(self, state: RunState) -> None:
        run_batches(
            state.batches,
            state.options.concurrency,
            lambda pkg: self._publish_one(state, pkg),
            stage="publish",
            on_failure=lambda pkg, exc: state.record(pkg, "failed", error=str(exc)),
        )

        if not state.has_rooted_leaf:
            # re-entrant publish lifecycles are skipped by the runner
            self.lifecycle.run_root(self.project.manifest, "publish")
            self.lifecycle.run_root(self.project.manifest, "postpublish")

    def _publish_one(self, state: RunState, pkg: PackageNode) -> PackageResult:
        if pkg.packed is None:
            raise RegistryError(f"{pkg.name} has not been packed")
        tag = self.publish_tag(pkg)
        self.registry.publish(pkg, pkg.packed.tarball, tag)
        logger.info("published %s %s", pkg.name, pkg.version)
        logger.debug("\n".join(format_packed(pkg.packed)))

        if state.options.require_scripts:
            script = find_package_script(pkg, "postpublish")
            if script is not None:
                script.run()
        return state.record(pkg, "published", tag=tag)

    # -- post-publish ----------------------------------------------------------------

    def reset_changes(self, state: RunState) -> None:
        # package.json files carry gitHead and rewritten ranges; always try to leave the tree clean
        if self.git is None:
            logger.warning("Unable to reset working tree changes, no git client configured")
            return
        manifests = [self.project.manifest, *state.packages]
        paths = [os.path.relpath(pkg.manifest_location, self.git.cwd) for pkg in manifests]
        try:
            self.git.checkout(paths)
        except GitError as exc:
            logger.debug("EGITCHECKOUT %s", exc)
            logger.warning("Unable to reset working tree changes, this probably isn't a git repo.")

    def promote_dist_tags(self, state: RunState) -> None:
        global_tag = state.options.global_dist_tag

        def promote(pkg: PackageNode) -> PackageResult:
            spec = f"{pkg.name}@{pkg.version}"
            tag = resolve_dist_tag(global_tag, pkg.publish_config)
            # remove first so two tags never point at this version at once
            self.registry.dist_tag_remove(spec, TEMP_DIST_TAG)
            self.registry.dist_tag_add(spec, tag)
            logger.info("dist-tag %s => %r", spec, tag)
            return state.record(pkg, "published", tag=tag)

        run_batches(
            state.batches,
            state.options.concurrency,
            promote,
            stage="dist-tag",
            on_failure=lambda pkg, exc: state.record(pkg, "failed", error=str(exc)),
        )


def publish(
    project: Project,
    graph: PackageGraph,
    options: PublishOptions,
    *,
    registry: RegistryAdapter,
    git: Optional[GitClient] = None,
    access: Optional[AccessClient] = None,
    lifecycle: Optional[LifecycleRunner] = None,
) -> PublishReport:
    command = PublishCommand(
        project,
        graph,
        options,
        registry=registry,
        git=git,
        access=access,
        lifecycle=lifecycle,
    )
    return command.execute()
