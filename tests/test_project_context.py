"""
Project Context Tests
=====================
"""
from kitpilot.services.project_context import collect_project_context


def _write(root, rel, text):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _project(root):
    _write(root, "kit.config.ts", "export default { template: 'erc20' }")
    _write(root, "contracts/src/Token.sol", "contract Token {}")
    _write(root, "contracts/src/lib/Vendored.sol", "library Vendored {}")
    _write(root, "contracts/script/Deploy.s.sol", "contract Deploy {}")
    _write(root, "contracts/test/Token.t.sol", "contract TokenTest {}")
    _write(root, "contracts/lib/forge-std/Test.sol", "contract Test {}")
    _write(root, "web/app/page.tsx", "export default function Page() {}")
    _write(root, "web/app/globals.css", "body {}")
    _write(root, "web/components/Button.tsx", "export const Button = 1")
    _write(root, "web/lib/utils.ts", "export const cn = 1")
    _write(root, "web/lib/generated/abi.ts", "export const abi = []")
    _write(root, "web/app/node_modules/pkg/index.ts", "export {}")


def test_collects_contracts_and_frontend_in_order(tmp_path):
    _project(tmp_path)

    context = collect_project_context(str(tmp_path))

    assert context.config == "export default { template: 'erc20' }"
    assert context.template == "erc20"
    assert [f.path for f in context.contracts] == [
        "contracts/src/Token.sol",
        "contracts/script/Deploy.s.sol",
        "contracts/test/Token.t.sol",
    ]
    assert [f.path for f in context.frontend] == [
        "web/app/page.tsx",
        "web/components/Button.tsx",
        "web/lib/utils.ts",
    ]


def test_budget_stops_adding_after_it_is_crossed(tmp_path):
    _write(tmp_path, "kit.config.ts", "x" * 10)
    _write(tmp_path, "contracts/src/A.sol", "a" * 20)
    _write(tmp_path, "contracts/src/B.sol", "b" * 20)
    _write(tmp_path, "web/app/page.tsx", "p")

    context = collect_project_context(str(tmp_path), max_size=15)

    assert [f.path for f in context.contracts] == ["contracts/src/A.sol"]
    assert context.frontend == []


def test_missing_directories_yield_empty_context(tmp_path):
    context = collect_project_context(str(tmp_path))

    assert context.config == ""
    assert context.template is None
    assert context.contracts == []
    assert context.frontend == []


def test_contracts_only_drops_frontend(tmp_path):
    _project(tmp_path)

    context = collect_project_context(str(tmp_path)).contracts_only()

    assert context.frontend == []
    assert len(context.contracts) == 3
    assert context.config
