import pytest

from src.config.settings import Settings
from src.core.models import Product


@pytest.fixture
def product():
    return Product(
        id="prod_hotmart_1",
        title="Curso de Marketing Digital",
        price=297.00,
        platform="Hotmart",
        description="Aprenda marketing digital do zero ao avançado",
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        output_root=str(tmp_path / "videos"),
        temp_root=str(tmp_path / "scratch"),
        framerate=30,
        duration_min=1.0,
        duration_max=2.0,
        render_workers=4,
    )

