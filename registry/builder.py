"""
Airdrop Commitment Builder - Build Pipeline

Runs one airdrop build: ingests every category in order, writes the tree and
proof artifacts, computes the Merkle root and commits the artifacts together
with a summary document. Also audits previously written artifacts.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from crypto.keys import KeyDeriver
from crypto.merkle import MerkleRoot, tree_depth
from crypto.exceptions import CryptoError

from .artifacts import (
    ProofWriter, TreeWriter, checksum, read_proof_artifact, read_tree_artifact
)
from .exceptions import ArtifactFormatError, RegistryError
from .loader import load_category
from .manager import CATEGORIES, LeafRegistry
from .schema import BuildSettings, Statistics
from .storage import ArtifactStorage


@dataclass
class BuildResult:
    """Outcome of a successful build."""
    tree_checksum: str
    proof_checksum: str
    merkle_root: bytes
    leaf_count: int
    tree_depth: int
    statistics: Statistics
    summary: Dict[str, Any]
    paths: Dict[str, Path] = field(default_factory=dict)


def build_summary(settings: BuildSettings, tree_checksum: str, proof_checksum: str,
                  merkle_root: bytes, leaf_count: int, statistics: Statistics) -> Dict[str, Any]:
    """Assemble the summary document; binary values are hex-encoded."""
    return {
        "tree_checksum": tree_checksum,
        "proof_checksum": proof_checksum,
        "merkle_root": merkle_root.hex(),
        "leaf_count": leaf_count,
        "tree_depth": tree_depth(leaf_count),
        "count_byte_order": settings.count_byte_order,
        "network": settings.network,
        "unit_reward": settings.unit_reward,
        "categories": statistics.to_dict(),
        "external_total": statistics.external_total,
        "faucet_total": statistics.faucet_total,
        "faucet_shares": statistics.faucet_shares,
    }


def serialize_summary(summary: Dict[str, Any]) -> bytes:
    return (json.dumps(summary, indent=2) + "\n").encode('utf-8')


class AirdropBuilder:
    """Builds the airdrop commitment from a directory of category files."""

    def __init__(self, settings: Optional[BuildSettings] = None):
        self.settings = settings or BuildSettings()
        self.deriver = KeyDeriver(self.settings.network)
        self.merkle = MerkleRoot()
        self.logger = logging.getLogger(__name__)

    def new_registry(self) -> LeafRegistry:
        return LeafRegistry(
            deriver=self.deriver,
            unit_reward=self.settings.unit_reward,
            derive_workers=self.settings.derive_workers,
        )

    def ingest_directory(self, input_dir: Union[str, Path]) -> LeafRegistry:
        """Load and ingest every category file from ``input_dir``."""
        registry = self.new_registry()
        for descriptor in CATEGORIES:
            records = load_category(input_dir, descriptor)
            registry.ingest(descriptor, records)
        return registry

    def build(self, input_dir: Union[str, Path], output_dir: Union[str, Path]) -> BuildResult:
        """
        Run a complete build.

        Args:
            input_dir: Directory with the five category files
            output_dir: Directory receiving tree, proof and summary files

        Returns:
            BuildResult describing the committed artifacts

        Raises:
            CryptoError: On invalid addresses, values or an empty leaf set
            RegistryError: On duplicate leaves, bad input files or storage failures
        """
        start_time = time.time()
        self.logger.info(f"Building airdrop from {input_dir} ({self.settings.network})")

        registry = self.ingest_directory(input_dir)
        return self.commit(registry, output_dir, start_time)

    def commit(self, registry: LeafRegistry, output_dir: Union[str, Path],
               start_time: Optional[float] = None) -> BuildResult:
        """Write the artifacts of a fully ingested registry."""
        if not registry.is_complete:
            raise RegistryError("Cannot commit before every category is ingested")

        leaves = registry.leaves
        statistics = registry.statistics
        merkle_root = self.merkle.compute(leaves)

        with ArtifactStorage(output_dir) as storage:
            tree_writer = TreeWriter(self.settings.count_byte_order, storage, self.settings.tree_file)
            proof_writer = ProofWriter(storage, self.settings.proof_file)

            _, tree_checksum = tree_writer.write(leaves)
            _, proof_checksum = proof_writer.write(registry.proof_entries)

            summary = build_summary(
                self.settings, tree_checksum, proof_checksum,
                merkle_root, len(leaves), statistics
            )
            storage.stage(self.settings.summary_file, serialize_summary(summary))

        paths = {
            name: Path(output_dir) / name
            for name in (self.settings.tree_file, self.settings.proof_file, self.settings.summary_file)
        }

        if start_time is not None:
            self.logger.info(f"Build completed in {time.time() - start_time:.3f}s")
        self.logger.info(f"Merkle root {merkle_root.hex()} over {len(leaves)} leaves")

        return BuildResult(
            tree_checksum=tree_checksum,
            proof_checksum=proof_checksum,
            merkle_root=merkle_root,
            leaf_count=len(leaves),
            tree_depth=summary["tree_depth"],
            statistics=statistics,
            summary=summary,
            paths=paths,
        )


@dataclass
class AuditReport:
    """Findings of an artifact audit."""
    issues: List[str] = field(default_factory=list)
    leaf_count: int = 0
    merkle_root: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.issues

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "leaf_count": self.leaf_count,
            "merkle_root": self.merkle_root,
            "issues": list(self.issues),
        }


def _read_bytes(path: Path, report: AuditReport) -> Optional[bytes]:
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        report.issues.append(f"Cannot read {path}: {e}")
        return None


def audit_artifacts(output_dir: Union[str, Path],
                    settings: Optional[BuildSettings] = None) -> AuditReport:
    """
    Re-check the artifacts of a finished build.

    Verifies the checksums and root recorded in the summary, the tree's sort
    order and count, and that every proof entry re-derives to a tree leaf.
    """
    settings = settings or BuildSettings()
    output_dir = Path(output_dir)
    report = AuditReport()

    tree_data = _read_bytes(output_dir / settings.tree_file, report)
    proof_data = _read_bytes(output_dir / settings.proof_file, report)
    summary_data = _read_bytes(output_dir / settings.summary_file, report)
    if tree_data is None or proof_data is None or summary_data is None:
        return report

    try:
        summary = json.loads(summary_data.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        report.issues.append(f"Summary is not valid JSON: {e}")
        return report
    if not isinstance(summary, dict):
        report.issues.append(f"Summary must be a JSON object, got {type(summary).__name__}")
        return report

    byte_order = summary.get("count_byte_order", settings.count_byte_order)
    try:
        leaves = read_tree_artifact(tree_data, byte_order)
        entries = read_proof_artifact(proof_data)
    except (ArtifactFormatError, TypeError, ValueError) as e:
        report.issues.append(f"Cannot parse artifacts: {e}")
        return report
    report.leaf_count = len(leaves)

    if checksum(tree_data) != summary.get("tree_checksum"):
        report.issues.append("Tree checksum does not match summary")
    if checksum(proof_data) != summary.get("proof_checksum"):
        report.issues.append("Proof checksum does not match summary")
    if len(leaves) != summary.get("leaf_count"):
        report.issues.append("Leaf count does not match summary")
    if len(entries) != len(leaves):
        report.issues.append(f"{len(entries)} proof entries for {len(leaves)} leaves")

    leaf_set = set(leaves)
    network = summary.get("network", settings.network)
    try:
        deriver = KeyDeriver(network)
    except (TypeError, ValueError) as e:
        report.issues.append(f"Cannot re-derive proof entries: {e}")
        deriver = None

    if deriver is not None:
        for index, entry in enumerate(entries):
            try:
                leaf = deriver.derive(entry.address, entry.value, entry.is_external)
            except CryptoError as e:
                report.issues.append(f"Proof entry {index}: {e}")
                continue
            if leaf not in leaf_set:
                report.issues.append(f"Proof entry {index} ({entry.address}) has no leaf in the tree")

    if leaves:
        root = MerkleRoot().compute(leaves).hex()
        report.merkle_root = root
        if root != summary.get("merkle_root"):
            report.issues.append("Merkle root does not match summary")
    if tree_depth(len(leaves)) != summary.get("tree_depth"):
        report.issues.append("Tree depth does not match summary")

    return report
