"""Tests for directory listing under the allowed roots."""
from __future__ import annotations

import pytest

from integration_service.core.exceptions import InvalidDirectoryError
from integration_service.domain.files import EnumerationOptions
from integration_service.services.files import FileService


@pytest.fixture
def roots(tmp_path):
    downloads = tmp_path / "data" / "downloads"
    incomplete = tmp_path / "data" / "incomplete"
    (downloads / "x" / "nested").mkdir(parents=True)
    (downloads / "y").mkdir()
    (downloads / ".hidden").mkdir()
    incomplete.mkdir(parents=True)
    (downloads / "x" / "track.flac").write_bytes(b"flac")
    (downloads / "x" / "cover.jpg").write_bytes(b"jpeg!")
    (downloads / "x" / "nested" / "deep.flac").write_bytes(b"deep")
    (downloads / "x" / ".DS_Store").write_bytes(b"")
    (tmp_path / "etc").mkdir()
    (tmp_path / "etc" / "passwd").write_text("root:x:0:0")
    return tmp_path, downloads, incomplete


@pytest.fixture
def service(roots):
    _, downloads, incomplete = roots
    return FileService([downloads, incomplete])


@pytest.mark.asyncio
async def test_scenario_d_outside_roots_is_rejected(service, roots):
    tmp_path, downloads, _ = roots

    with pytest.raises(InvalidDirectoryError):
        await service.list_files(tmp_path / "etc")
    with pytest.raises(InvalidDirectoryError):
        await service.list_files("/etc")

    files = await service.list_files(downloads / "x")
    assert sorted(f.name for f in files) == ["cover.jpg", "track.flac"]


@pytest.mark.asyncio
async def test_parent_traversal_is_rejected(service, roots):
    _, downloads, _ = roots

    with pytest.raises(InvalidDirectoryError):
        await service.list_directories(downloads / ".." / ".." / "etc")


@pytest.mark.asyncio
async def test_sibling_with_common_prefix_is_rejected(service, roots):
    tmp_path, _, _ = roots
    evil = tmp_path / "data" / "downloads-evil"
    evil.mkdir()

    with pytest.raises(InvalidDirectoryError):
        await service.list_directories(evil)


@pytest.mark.asyncio
async def test_list_directories(service, roots):
    _, downloads, incomplete = roots

    top = await service.list_directories(downloads)
    assert [d.name for d in top] == ["x", "y"]
    assert top[0].full_name == str(downloads / "x")

    assert await service.list_directories(incomplete) == []


@pytest.mark.asyncio
async def test_list_directories_recursive(service, roots):
    _, downloads, _ = roots

    entries = await service.list_directories(downloads, EnumerationOptions(recurse_subdirectories=True))

    assert sorted(d.name for d in entries) == ["nested", "x", "y"]


@pytest.mark.asyncio
async def test_list_files_with_pattern_recursion_and_hidden(service, roots):
    _, downloads, _ = roots

    flac = await service.list_files(
        downloads, EnumerationOptions(recurse_subdirectories=True, match_pattern="*.flac")
    )
    assert sorted(f.name for f in flac) == ["deep.flac", "track.flac"]
    assert {f.length for f in flac} == {4}

    shallow = await service.list_files(
        downloads / "x", EnumerationOptions(recurse_subdirectories=True, max_recursion_depth=0)
    )
    assert sorted(f.name for f in shallow) == ["cover.jpg", "track.flac"]

    with_hidden = await service.list_files(downloads / "x", EnumerationOptions(skip_hidden=False))
    assert ".DS_Store" in {f.name for f in with_hidden}


@pytest.mark.asyncio
async def test_missing_directory_under_root(service, roots):
    _, downloads, _ = roots

    with pytest.raises(FileNotFoundError):
        await service.list_files(downloads / "missing")


def test_is_permissible_directory(service, roots):
    tmp_path, downloads, incomplete = roots

    assert service.is_permissible_directory(downloads)
    assert service.is_permissible_directory(incomplete / "partial")
    assert not service.is_permissible_directory(tmp_path / "data")
