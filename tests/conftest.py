"""
Pytest configuration and shared fixtures for Minifig Composer tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import pytest
from PIL import Image

from MC_Libs.BgRemovalLib.image_loader import encode_png_data_url
from MC_Libs.CatalogLib.catalog_models import CatalogPart, Minifig, MinifigPart, PartColor
from MC_Libs.ComposerLib.composer_models import SelectedPart


@pytest.fixture
def temp_store_dir(tmp_path):
    """
    Provide a temporary base directory for collection files.

    Args:
        tmp_path: Pytest's built-in temporary directory fixture

    Returns:
        Path object pointing to a temporary directory
    """
    return tmp_path


@pytest.fixture
def sample_minifig():
    """Provide a minifig record as returned by the catalog."""
    return Minifig(
        set_num="fig-000123",
        name="Space Explorer",
        num_parts=4,
        set_img_url="https://cdn.rebrickable.com/media/sets/fig-000123.jpg",
    )


@pytest.fixture
def sample_minifig_part(sample_minifig):
    """Provide a yellow head part from the sample minifig's inventory."""
    return MinifigPart(
        part=CatalogPart(
            part_num="3626cpr0001",
            name="Minifig Head Standard Grin",
            part_img_url="https://cdn.rebrickable.com/media/parts/elements/3626cpr0001.jpg",
        ),
        color=PartColor(id=14, name="Yellow", rgb="F2CD37"),
        set_num=sample_minifig.set_num,
    )


@pytest.fixture
def make_selected_part(sample_minifig, sample_minifig_part):
    """
    Provide a factory for SelectedPart instances sharing the sample records.

    Returns:
        Callable taking (part_id, position=None)
    """
    def _make(part_id, position=None):
        return SelectedPart(
            id=part_id,
            part=sample_minifig_part,
            source_minifig=sample_minifig,
            position=position,
        )
    return _make


@pytest.fixture
def solid_data_url():
    """
    Provide a factory for solid-color PNG data URLs.

    Returns:
        Callable taking (color, size=(100, 100))
    """
    def _make(color, size=(100, 100)):
        return encode_png_data_url(Image.new("RGBA", size, color))
    return _make
