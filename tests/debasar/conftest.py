import pytest

from debasar.config import ExtractorConfig

ALTERNATIVE_CONFIG = ExtractorConfig(use_python_xz=True)


@pytest.fixture(params=[False, True], ids=["defaultlibs", "altlibs"])
def extractor_config(request: pytest.FixtureRequest) -> ExtractorConfig:
    if request.param:
        pytest.importorskip("xz")
        return ALTERNATIVE_CONFIG
    return ExtractorConfig()
