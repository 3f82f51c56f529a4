# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import unittest
from typing import Optional

from pydantic import Field

from gutdiary.flows.base import Flow
from gutdiary.flows.client import ModelClient, ModelSettings
from gutdiary.flows.errors import FlowInputError, ModelCallError, ModelOutputError
from gutdiary.schema import CamelModel, choice
from support import ScriptedClient

Risk = choice("Green", "Yellow", "Red")


class EchoInput(CamelModel):
    food_item: str = Field(..., min_length=1)
    portion_size: Optional[str] = None


class EchoOutput(CamelModel):
    overall_risk: Risk
    reason: str


def _render(inp: EchoInput) -> str:
    return f"Food Item: {inp.food_item}"


def _flow(**hooks) -> Flow:
    return Flow("echo", input_model=EchoInput, output_model=EchoOutput, render=_render, system="You rate food.", **hooks)


def _cfg() -> ModelSettings:
    return ModelSettings(
        base_url="http://llm.test/v1",
        api_key=None,
        model="test-model",
        timeout=5.0,
        max_tokens=256,
        temperature=0.4,
    )


class TestFlowGateway(unittest.IsolatedAsyncioTestCase):
    async def test_invalid_input_never_reaches_the_model(self) -> None:
        client = ScriptedClient()
        with self.assertRaises(FlowInputError) as ctx:
            await _flow().run({"foodItem": ""}, client=client)
        self.assertEqual(client.calls, 0)
        self.assertEqual(ctx.exception.flow, "echo")
        self.assertTrue(ctx.exception.errors)
        self.assertIn("foodItem", str(ctx.exception))

    async def test_camel_and_snake_input_keys(self) -> None:
        client = ScriptedClient(json.dumps({"overallRisk": "Green", "reason": "ok"}), json.dumps({"overallRisk": "Green", "reason": "ok"}))
        await _flow().run({"foodItem": "Rice"}, client=client)
        await _flow().run({"food_item": "Rice"}, client=client)
        self.assertEqual(client.requests[0].prompt, "Food Item: Rice")
        self.assertEqual(client.requests[1].prompt, "Food Item: Rice")

    async def test_enum_values_tolerate_case_and_spacing(self) -> None:
        client = ScriptedClient('Here you go:\n```json\n{"overall_risk": " red ", "reason": "garlic"}\n```')
        out = await _flow().run({"foodItem": "Garlic Bread"}, client=client)
        self.assertEqual(out.overall_risk, "Red")
        self.assertEqual(out.reason, "garlic")

    async def test_off_schema_reply_is_an_output_error(self) -> None:
        client = ScriptedClient(json.dumps({"overallRisk": "Purple", "reason": "?"}))
        with self.assertRaises(ModelOutputError) as ctx:
            await _flow().run({"foodItem": "Rice"}, client=client)
        self.assertFalse(ctx.exception.empty)
        self.assertEqual(ctx.exception.flow, "echo")
        self.assertIn("Purple", ctx.exception.raw_text)

    async def test_blank_reply_is_flagged_empty(self) -> None:
        with self.assertRaises(ModelOutputError) as ctx:
            await _flow().run({"foodItem": "Rice"}, client=ScriptedClient("  \n"))
        self.assertTrue(ctx.exception.empty)

    async def test_plain_text_reply_goes_through_parse_text(self) -> None:
        flow = _flow(parse_text=lambda text, inp: {"overallRisk": "Green", "reason": text.strip()})
        out = await flow.run({"foodItem": "Rice"}, client=ScriptedClient("Plain rice is low FODMAP."))
        self.assertEqual(out.reason, "Plain rice is low FODMAP.")

    async def test_fallback_receives_the_failure(self) -> None:
        flow = _flow(fallback=lambda exc, inp: EchoOutput(overall_risk="Yellow", reason=f"{type(exc).__name__}:{inp.food_item}"))
        client = ScriptedClient(ModelCallError("busy", kind="overloaded", status_code=503))
        out = await flow.run({"foodItem": "Rice"}, client=client)
        self.assertEqual(out.reason, "ModelCallError:Rice")
        self.assertEqual(client.calls, 1)

    async def test_failure_without_fallback_is_raised_with_flow_name(self) -> None:
        client = ScriptedClient(ModelCallError("timed out", kind="timeout"))
        with self.assertRaises(ModelCallError) as ctx:
            await _flow().run({"foodItem": "Rice"}, client=client)
        self.assertEqual(ctx.exception.flow, "echo")
        self.assertEqual(ctx.exception.kind, "timeout")

    async def test_programming_errors_are_not_swallowed_by_fallback(self) -> None:
        flow = _flow(fallback=lambda exc, inp: EchoOutput(overall_risk="Green", reason="fallback"))
        with self.assertRaises(RuntimeError):
            await flow.run({"foodItem": "Rice"}, client=ScriptedClient(RuntimeError("boom")))

    async def test_short_circuit_skips_the_model(self) -> None:
        flow = _flow(short_circuit=lambda inp: EchoOutput(overall_risk="Green", reason="water") if inp.food_item == "Water" else None)
        client = ScriptedClient()
        out = await flow.run({"foodItem": "Water"}, client=client)
        self.assertEqual(out.reason, "water")
        self.assertEqual(client.calls, 0)

    async def test_finalize_adjusts_validated_output(self) -> None:
        flow = _flow(finalize=lambda out, inp: out.model_copy(update={"reason": out.reason.upper()}))
        out = await flow.run({"foodItem": "Rice"}, client=ScriptedClient('{"overallRisk": "Green", "reason": "fine"}'))
        self.assertEqual(out.reason, "FINE")


class TestFlowRequests(unittest.TestCase):
    def test_system_prompt_embeds_output_schema(self) -> None:
        prompt = _flow().system_prompt()
        self.assertTrue(prompt.startswith("You rate food."))
        self.assertIn("single JSON object", prompt)
        self.assertIn('"overallRisk"', prompt)

    def test_json_mode_controls_response_format(self) -> None:
        client = ModelClient(_cfg())
        inp = EchoInput(food_item="Rice")

        payload = client.build_payload(_flow().build_request(inp))
        self.assertEqual(payload["response_format"], {"type": "json_object"})
        self.assertEqual(payload["messages"][0]["role"], "system")
        self.assertEqual(payload["messages"][1], {"role": "user", "content": "Food Item: Rice"})

        payload = client.build_payload(_flow(json_mode=False, temperature=0.9).build_request(inp))
        self.assertNotIn("response_format", payload)
        self.assertEqual(payload["temperature"], 0.9)


if __name__ == "__main__":
    unittest.main()
