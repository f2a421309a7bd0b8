"""Tests for ComponentSynthesisExecutor and deterministic integration."""

import pytest

from conftest import APP_TSX, HEADER_TSX
from intelligent_modifier.agents.exceptions import IntegrationError, SynthesisFailure
from intelligent_modifier.agents.executors.component_synthesis import (
    ComponentSynthesisExecutor,
    add_default_import,
    add_route,
    apply_integration_plan,
    find_routing_file,
    import_specifier,
    mount_component,
    route_path_for,
)
from intelligent_modifier.models.change_models import ChangeType
from intelligent_modifier.models.scope_models import ComponentAdditionScope
from intelligent_modifier.models.synthesis_models import ComponentPlan, IntegrationPlan

FAQ_TSX = """import React from 'react';

const FAQ = () => {
  return (
    <section className="max-w-3xl mx-auto py-12">
      <h1 className="text-3xl font-bold">Frequently Asked Questions</h1>
    </section>
  );
};

export default FAQ;
"""

BANNER_TSX = """import React from 'react';

export default function Banner() {
  return <div className="bg-yellow-100 p-2">Free shipping this week</div>;
}
"""


def faq_plan(**integration) -> ComponentPlan:
    return ComponentPlan(
        component_name="FAQ",
        component_type="page",
        file_path="src/pages/FAQ.tsx",
        content=FAQ_TSX,
        integration=IntegrationPlan(**integration),
    )


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

class TestIntegrationHelpers:
    """Tests for route/import/mount splicing."""

    @pytest.mark.parametrize("name,path", [
        ("FAQ", "/faq"),
        ("ContactUs", "/contact-us"),
        ("HTMLGuide", "/html-guide"),
    ])
    def test_route_path_for(self, name, path):
        assert route_path_for(name) == path

    @pytest.mark.parametrize("from_file,target,specifier", [
        ("src/App.tsx", "src/pages/FAQ.tsx", "./pages/FAQ"),
        ("src/components/Header.tsx", "src/components/Banner.tsx", "./Banner"),
        ("src/pages/Home.tsx", "src/components/Banner.tsx", "../components/Banner"),
    ])
    def test_import_specifier(self, from_file, target, specifier):
        assert import_specifier(from_file, target) == specifier

    def test_find_routing_file(self):
        assert find_routing_file({"src/main.tsx": "", "src/App.tsx": APP_TSX}) == "src/App.tsx"
        assert find_routing_file({"src/router/index.tsx": "<Routes></Routes>"}) == "src/router/index.tsx"
        assert find_routing_file({"src/lib/x.ts": ""}) is None

    def test_add_route(self):
        updated = add_route(APP_TSX, "src/App.tsx", "FAQ", "/faq")
        assert (
            '        <Route path="/login" element={<Login />} />\n'
            '        <Route path="/faq" element={<FAQ />} />\n'
            '      </Routes>'
        ) in updated

    def test_add_route_is_idempotent(self):
        once = add_route(APP_TSX, "src/App.tsx", "FAQ", "/faq")
        assert add_route(once, "src/App.tsx", "FAQ", "/faq") == once

    def test_add_route_without_routes(self):
        with pytest.raises(IntegrationError, match="no <Routes>"):
            add_route(HEADER_TSX, "src/components/Header.tsx", "FAQ", "/faq")

    def test_add_default_import_follows_style(self):
        updated = add_default_import(APP_TSX, "src/App.tsx", "FAQ", "./pages/FAQ")
        assert "import Login from './pages/Login';\nimport FAQ from './pages/FAQ';\n" in updated
        assert add_default_import(updated, "src/App.tsx", "FAQ", "./pages/FAQ") == updated

    def test_mount_component(self):
        updated = mount_component(HEADER_TSX, "src/components/Header.tsx", "Banner")
        assert "      </nav>\n      <Banner />\n    </header>" in updated
        assert mount_component(updated, "src/components/Header.tsx", "Banner") == updated


class TestApplyIntegrationPlan:
    """Tests for the pure integration step."""

    def test_page_gets_route_and_import(self):
        changed = apply_integration_plan({"src/App.tsx": APP_TSX}, faq_plan(route_path="/faq", route_file="src/App.tsx"))
        assert list(changed) == ["src/App.tsx"]
        assert "import FAQ from './pages/FAQ';" in changed["src/App.tsx"]
        assert '<Route path="/faq" element={<FAQ />} />' in changed["src/App.tsx"]

    def test_idempotent(self):
        plan = faq_plan(route_path="/faq", route_file="src/App.tsx")
        first = apply_integration_plan({"src/App.tsx": APP_TSX}, plan)
        assert apply_integration_plan(first, plan) == {}

    def test_default_route_path_and_file(self):
        changed = apply_integration_plan({"src/App.tsx": APP_TSX}, faq_plan())
        assert 'path="/faq"' in changed["src/App.tsx"]

    def test_missing_site_raises(self):
        plan = ComponentPlan(
            component_name="Banner",
            component_type="component",
            file_path="src/components/Banner.tsx",
            content=BANNER_TSX,
            integration=IntegrationPlan(import_site="src/components/Footer.tsx", mount_in_parent=True),
        )
        with pytest.raises(IntegrationError, match="does not exist"):
            apply_integration_plan({"src/App.tsx": APP_TSX}, plan)

    def test_component_mounted_in_parent(self):
        plan = ComponentPlan(
            component_name="Banner",
            component_type="component",
            file_path="src/components/Banner.tsx",
            content=BANNER_TSX,
            integration=IntegrationPlan(import_site="src/components/Header.tsx", mount_in_parent=True),
        )
        changed = apply_integration_plan({"src/components/Header.tsx": HEADER_TSX}, plan)
        header = changed["src/components/Header.tsx"]
        assert 'import Banner from "./Banner";' in header
        assert "<Banner />" in header


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

class TestComponentSynthesisExecutor:
    """Tests for the COMPONENT_ADDITION executor."""

    def test_adds_page_and_wires_route(self, make_context, react_project, mock_synthesis):
        mock_synthesis.plan_component.return_value = faq_plan(route_path="/faq", route_file="src/App.tsx")
        scope = ComponentAdditionScope(reasoning="new page", component_name="FAQ", component_type="page")

        result = ComponentSynthesisExecutor(mock_synthesis).execute(scope, make_context("add a FAQ page"))

        assert result.success
        assert result.files_added == ["src/pages/FAQ.tsx"]
        assert result.files_modified == ["src/App.tsx"]
        assert (react_project / "src/pages/FAQ.tsx").read_text() == FAQ_TSX
        app = (react_project / "src/App.tsx").read_text()
        assert "import FAQ from './pages/FAQ';" in app
        assert '<Route path="/faq" element={<FAQ />} />' in app
        assert [c.type for c in result.changes] == [ChangeType.CREATED, ChangeType.MODIFIED]

        args = mock_synthesis.plan_component.call_args[0]
        assert args[1:3] == ("FAQ", "page")
        assert args[4][0] == "src/App.tsx"

    def test_second_run_with_same_plan_leaves_app_alone(self, make_context, react_project, mock_synthesis):
        mock_synthesis.plan_component.return_value = faq_plan(route_path="/faq")
        scope = ComponentAdditionScope(component_name="FAQ", component_type="page")
        executor = ComponentSynthesisExecutor(mock_synthesis)
        executor.execute(scope, make_context("add a FAQ page"))
        app_after_first = (react_project / "src/App.tsx").read_text()

        result = executor.execute(scope, make_context("add a FAQ page"))

        assert result.changes == []
        assert (react_project / "src/App.tsx").read_text() == app_after_first

    def test_refuses_to_overwrite_existing_file(self, make_context, react_project, mock_synthesis):
        mock_synthesis.plan_component.return_value = ComponentPlan(
            component_name="Home",
            component_type="page",
            file_path="src/pages/Home.tsx",
            content=FAQ_TSX,
        )
        with pytest.raises(SynthesisFailure, match="already exists"):
            ComponentSynthesisExecutor(mock_synthesis).execute(
                ComponentAdditionScope(component_type="page"), make_context("add home")
            )

    def test_rejects_unit_outside_src(self, make_context, mock_synthesis):
        mock_synthesis.plan_component.return_value = ComponentPlan(
            component_name="FAQ", component_type="page", file_path="../FAQ.tsx", content=FAQ_TSX,
        )
        with pytest.raises(SynthesisFailure, match="Unexpected location"):
            ComponentSynthesisExecutor(mock_synthesis).execute(ComponentAdditionScope(), make_context("x"))

    def test_rejects_unparseable_unit(self, make_context, react_project, mock_synthesis):
        mock_synthesis.plan_component.return_value = ComponentPlan(
            component_name="FAQ",
            component_type="page",
            file_path="src/pages/FAQ.tsx",
            content="const FAQ = () => <div>;",
        )
        with pytest.raises(SynthesisFailure, match="does not parse"):
            ComponentSynthesisExecutor(mock_synthesis).execute(ComponentAdditionScope(), make_context("x"))
        assert not (react_project / "src/pages/FAQ.tsx").exists()

    def test_without_synthesis(self, make_context):
        with pytest.raises(SynthesisFailure):
            ComponentSynthesisExecutor().execute(ComponentAdditionScope(), make_context("x"))
