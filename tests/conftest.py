import pytest
import stamina

from project_chat.common.config import IndexConfig


@pytest.fixture(autouse=True)
def no_retry_backoff():
    stamina.set_testing(True)
    yield
    stamina.set_testing(False)


@pytest.fixture
def project_dir(tmp_path):
    """A small project: docs/ with a README and guide, src/ with code, plus excluded noise."""
    docs = tmp_path / "docs"
    src = tmp_path / "src"
    (docs / "guides").mkdir(parents=True)
    (src / "lib").mkdir(parents=True)
    (src / "node_modules" / "dep").mkdir(parents=True)

    (docs / "README.md").write_text("# mylib\n\nA tiny library.\n\nInstall with npm install mylib.\n")
    (docs / "guides" / "usage.md").write_text(
        "# Usage\n\nImport the client.\n\nCall connect() before query().\n\nconnect takes a url.\n"
    )
    (docs / "notes.bin").write_text("not indexed")
    (src / "lib" / "client.ts").write_text(
        "export function connect(url: string) {\n  return new Client(url)\n}\n\nexport class Client {}\n"
    )
    (src / "node_modules" / "dep" / "index.js").write_text("module.exports = function connect() {}\n")
    return tmp_path


@pytest.fixture
def index_config(project_dir):
    return IndexConfig(docs_dir=str(project_dir / "docs"), code_dir=str(project_dir / "src"))
