import pytest

from tests.helpers.ledger import ScriptedAmm


@pytest.fixture
def scripted_amm(monkeypatch: pytest.MonkeyPatch) -> ScriptedAmm:
    return ScriptedAmm().install(monkeypatch)
