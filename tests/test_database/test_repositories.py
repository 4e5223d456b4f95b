"""Tests for repository interface generation (servicegen.database.repositories).

Tests cover:
- class naming, package and template context
- idempotent, byte-identical regeneration
- per-entity failures are counted, not raised
- generate_from_file requires introspector output
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from servicegen.config import ProjectIdentity
from servicegen.database import metadata
from servicegen.database.metadata import EntityMetadata
from servicegen.database.repositories import RepositoryGenerator, repository_package
from servicegen.errors import MetadataError
from servicegen.scaffolder.templates import TemplateRenderer

pytestmark = pytest.mark.unit

REPO_DIR = Path("src/main/java/com/acme/orders/infrastructure/repositories")
POJO_PACKAGE = "com.acme.orders.infrastructure.repositories.tables.pojos"


@pytest.fixture
def generator(renderer: TemplateRenderer) -> RepositoryGenerator:
    return RepositoryGenerator(renderer)


def _entry(table: str, cls: str, pk: str) -> EntityMetadata:
    return EntityMetadata(
        table_name=table,
        entity_class_name=cls,
        entity_package_name=POJO_PACKAGE,
        primary_key_type=pk,
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestGenerate:
    @pytest.mark.asyncio
    async def test_order_item_repository(
        self,
        generator: RepositoryGenerator,
        identity: ProjectIdentity,
        order_item_metadata: EntityMetadata,
        tmp_path: Path,
    ):
        report = await generator.generate([order_item_metadata], identity, tmp_path)

        assert report.success_count == 1
        assert report.failure_count == 0
        path = tmp_path / REPO_DIR / "OrderItemRepository.java"
        assert report.written == [path]

        source = path.read_text(encoding="utf-8")
        assert source.startswith("package com.acme.orders.infrastructure.repositories;")
        assert f"import {POJO_PACKAGE}.OrderItem;" in source
        assert (
            "public interface OrderItemRepository extends JpaRepository<OrderItem, Long>"
            in source
        )

    @pytest.mark.asyncio
    async def test_primary_key_import(
        self, generator: RepositoryGenerator, identity: ProjectIdentity, tmp_path: Path
    ):
        await generator.generate([_entry("tb_product", "Product", "UUID")], identity, tmp_path)
        source = (tmp_path / REPO_DIR / "ProductRepository.java").read_text(encoding="utf-8")
        assert "import java.util.UUID;" in source
        assert "JpaRepository<Product, UUID>" in source

    @pytest.mark.asyncio
    async def test_no_import_for_java_lang_key(
        self,
        generator: RepositoryGenerator,
        identity: ProjectIdentity,
        order_item_metadata: EntityMetadata,
        tmp_path: Path,
    ):
        await generator.generate([order_item_metadata], identity, tmp_path)
        source = (tmp_path / REPO_DIR / "OrderItemRepository.java").read_text(encoding="utf-8")
        assert "import java.lang" not in source
        assert "import java.util" not in source

    def test_repository_package(self):
        assert repository_package("org.shop") == "org.shop.infrastructure.repositories"

    @pytest.mark.asyncio
    async def test_empty_set(
        self, generator: RepositoryGenerator, identity: ProjectIdentity, tmp_path: Path
    ):
        report = await generator.generate([], identity, tmp_path)
        assert (report.success_count, report.failure_count) == (0, 0)
        assert not (tmp_path / REPO_DIR).exists()


# ---------------------------------------------------------------------------
# Idempotence
# ---------------------------------------------------------------------------


class TestIdempotence:
    @pytest.mark.asyncio
    async def test_second_run_is_byte_identical(
        self, generator: RepositoryGenerator, identity: ProjectIdentity, tmp_path: Path
    ):
        entries = [
            _entry("tb_customer", "Customer", "Integer"),
            _entry("tb_order_item", "OrderItem", "Long"),
            _entry("tb_product", "Product", "String"),
        ]
        first = await generator.generate(entries, identity, tmp_path)
        snapshot = {p: p.read_bytes() for p in first.written}

        second = await generator.generate(entries, identity, tmp_path)
        assert second.written == first.written
        assert {p: p.read_bytes() for p in second.written} == snapshot

    @pytest.mark.asyncio
    async def test_overwrites_stale_file(
        self,
        generator: RepositoryGenerator,
        identity: ProjectIdentity,
        order_item_metadata: EntityMetadata,
        tmp_path: Path,
    ):
        path = tmp_path / REPO_DIR / "OrderItemRepository.java"
        path.parent.mkdir(parents=True)
        path.write_text("stale", encoding="utf-8")
        await generator.generate([order_item_metadata], identity, tmp_path)
        assert "stale" not in path.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Per-entity failures
# ---------------------------------------------------------------------------


class TestFailures:
    @pytest.mark.asyncio
    async def test_write_failure_is_counted(
        self, generator: RepositoryGenerator, identity: ProjectIdentity, tmp_path: Path
    ):
        entries = [
            _entry("tb_customer", "Customer", "Integer"),
            _entry("tb_order_item", "OrderItem", "Long"),
        ]
        original = generator.renderer.render_to_file

        async def flaky(template, output_path, context):
            if context["pojoClassName"] == "Customer":
                raise PermissionError("read-only file system")
            return await original(template, output_path, context)

        with patch.object(generator.renderer, "render_to_file", side_effect=flaky):
            report = await generator.generate(entries, identity, tmp_path)

        assert report.success_count == 1
        assert report.failure_count == 1
        assert "read-only" in report.failures["tb_customer"]
        assert (tmp_path / REPO_DIR / "OrderItemRepository.java").exists()

    @pytest.mark.asyncio
    async def test_missing_template_is_counted(self, identity: ProjectIdentity, tmp_path: Path):
        empty_templates = tmp_path / "templates"
        empty_templates.mkdir()
        generator = RepositoryGenerator(TemplateRenderer(empty_templates))
        report = await generator.generate(
            [_entry("tb_customer", "Customer", "Integer")], identity, tmp_path / "out"
        )
        assert report.failure_count == 1
        assert report.success_count == 0

    @pytest.mark.asyncio
    async def test_unresolved_key_type_is_counted(
        self, generator: RepositoryGenerator, identity: ProjectIdentity, tmp_path: Path
    ):
        report = await generator.generate(
            [_entry("tb_customer", "Customer", " "), _entry("tb_product", "Product", "String")],
            identity,
            tmp_path,
        )
        assert report.failure_count == 1
        assert report.success_count == 1
        assert "unresolved" in report.failures["tb_customer"]

    @pytest.mark.asyncio
    async def test_report_to_dict(
        self, generator: RepositoryGenerator, identity: ProjectIdentity, tmp_path: Path
    ):
        report = await generator.generate(
            [_entry("tb_customer", "Customer", "Integer")], identity, tmp_path
        )
        data = report.to_dict()
        assert data["success_count"] == 1
        assert data["failure_count"] == 0
        assert data["written"][0].endswith("CustomerRepository.java")


# ---------------------------------------------------------------------------
# Ordering against the metadata file
# ---------------------------------------------------------------------------


class TestGenerateFromFile:
    @pytest.mark.asyncio
    async def test_fails_without_introspector_output(
        self, generator: RepositoryGenerator, identity: ProjectIdentity, tmp_path: Path
    ):
        with pytest.raises(MetadataError):
            await generator.generate_from_file(
                tmp_path / "repository-metadata.json", identity, tmp_path
            )
        assert not (tmp_path / REPO_DIR).exists()

    @pytest.mark.asyncio
    async def test_reads_flushed_metadata(
        self,
        generator: RepositoryGenerator,
        identity: ProjectIdentity,
        order_item_metadata: EntityMetadata,
        tmp_path: Path,
    ):
        path = tmp_path / "src" / "main" / "java" / "repository-metadata.json"
        await metadata.flush([order_item_metadata], path)
        report = await generator.generate_from_file(path, identity, tmp_path)
        assert report.success_count == 1
        assert (tmp_path / REPO_DIR / "OrderItemRepository.java").exists()
