import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from nodebase.executions.templating import render
from nodebase.workflow.context import TRIGGER_WRITER, WorkflowContext
from nodebase.workflow.errors import NonRetriableError, TemplateResolutionError


class WorkflowContextTests(unittest.TestCase):
    def test_initial_payload_is_attributed_to_trigger(self):
        ctx = WorkflowContext.from_initial({"x": 1, "y": "two"})

        self.assertEqual(ctx.to_dict(), {"x": 1, "y": "two"})
        self.assertEqual(ctx.provenance("x"), TRIGGER_WRITER)
        self.assertIsNone(ctx.provenance("missing"))

    def test_empty_initial_payload(self):
        self.assertEqual(len(WorkflowContext.from_initial(None)), 0)

    def test_with_value_returns_new_context(self):
        base = WorkflowContext.from_initial({"x": 1})
        updated = base.with_value("r", {"ok": True}, written_by="node-1")

        self.assertNotIn("r", base)
        self.assertEqual(updated["r"], {"ok": True})
        self.assertEqual(updated["x"], 1)
        self.assertEqual(list(updated), ["x", "r"])
        self.assertEqual(updated.provenance("r"), "node-1")

    def test_overwrite_keeps_history_and_warns(self):
        ctx = WorkflowContext.from_initial({}).with_value("r", 1, written_by="node-1")

        with self.assertLogs("nodebase.workflow.context", level="WARNING") as logs:
            ctx = ctx.with_value("r", 2, written_by="node-2")

        self.assertIn("node-1", logs.output[0])
        self.assertEqual(ctx["r"], 2)
        self.assertEqual(ctx.provenance("r"), "node-2")
        self.assertEqual([w.written_by for w in ctx.history("r")], ["node-1", "node-2"])
        self.assertEqual(len(ctx.history()), 2)

    def test_compares_equal_to_plain_dict(self):
        self.assertEqual(WorkflowContext.from_initial({"a": 1}), {"a": 1})


class TemplateTests(unittest.TestCase):
    def test_variable_substitution(self):
        self.assertEqual(
            render("https://api.com/items/{{id}}", {"id": 7}),
            "https://api.com/items/7",
        )

    def test_nested_paths_and_list_indexes(self):
        context = {"stripe": {"raw": {"items": [{"sku": "abc"}]}}}
        self.assertEqual(render("/skus/{{ stripe.raw.items.0.sku }}", context), "/skus/abc")

    def test_missing_values_render_empty(self):
        self.assertEqual(render("a{{nope.deeper}}b", {}), "ab")

    def test_objects_render_as_json(self):
        self.assertEqual(render("{{user}}", {"user": {"name": "Ada"}}), '{"name": "Ada"}')

    def test_json_helper(self):
        context = {"name": 'Ada "the first"', "tags": ["a", "b"]}
        self.assertEqual(
            render('{"name": {{json name}}, "tags": {{json tags}}}', context),
            '{"name": "Ada \\"the first\\"", "tags": ["a", "b"]}',
        )

    def test_json_helper_on_missing_value_is_null(self):
        self.assertEqual(render("{{json nope}}", {}), "null")

    def test_triple_braces(self):
        self.assertEqual(render("{{{html}}}", {"html": "<b>"}), "<b>")

    def test_unknown_helper_renders_empty(self):
        self.assertEqual(render("{{invalid json}}", {"invalid": 1}), "")

    def test_unterminated_expression_raises(self):
        with self.assertRaises(TemplateResolutionError) as ctx:
            render("https://api.com/{{id", {"id": 1})
        self.assertIsInstance(ctx.exception, NonRetriableError)

    def test_empty_expression_raises(self):
        with self.assertRaises(TemplateResolutionError):
            render("{{ }}", {})

    def test_non_string_template_raises(self):
        with self.assertRaises(TemplateResolutionError):
            render(42, {})


if __name__ == "__main__":
    unittest.main()
