# -*- coding: utf-8 -*-

from __future__ import annotations

import base64
import json
import unittest

from gutdiary.flows import (
    FlowInputError,
    ModelCallError,
    ModelOutputError,
    analyze_food_item,
    get_daily_insights,
    get_personalized_dietitian_insight,
    get_symptom_correlations,
    get_user_recommendation,
    identify_food_from_image,
    is_similar_to_safe_foods,
    process_feedback,
    process_meal_description,
)
from gutdiary.flows.correlation import MORE_DATA_NEEDED
from gutdiary.flows.daily_insights import DEFAULT_MICRONUTRIENT, DEFAULT_SUMMARY, DEFAULT_TRIGGER
from gutdiary.flows.dietitian import NO_RESPONSE_TEXT
from gutdiary.flows.fodmap import MISSING_INGREDIENT_REASON, estimate_profile_from_name, split_ingredients
from gutdiary.flows.image import NO_OUTPUT_MESSAGE
from gutdiary.flows.recommendation import DEFAULT_RECOMMENDATION
from gutdiary.flows.similarity import NO_SAFE_FOODS_REASON
from support import ScriptedClient

GARLIC_BREAD = {
    "foodItem": "Garlic Bread",
    "ingredients": "Bread, Butter, Garlic",
    "portionSize": "1",
    "portionUnit": "slice",
}

PNG_URI = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\nfake-image").decode("ascii")


def _food(i: int, name: str = "Garlic Bread") -> dict:
    return {
        "id": f"f{i}",
        "name": name,
        "ingredients": "Bread, Garlic",
        "portionSize": "1",
        "portionUnit": "slice",
        "timestamp": f"2026-10-0{i + 1}T12:00:00Z",
        "overallFodmapRisk": "Red",
    }


class TestFodmapAnalysis(unittest.IsolatedAsyncioTestCase):
    async def test_garlic_bread_covers_every_ingredient(self) -> None:
        reply = {
            "ingredientFodmapScores": [
                {"ingredient": "Bread", "score": "Red", "reason": "Wheat fructans"},
                {"ingredient": "Garlic", "score": "red", "reason": "Very high in fructans"},
            ],
            "overallRisk": "Red",
            "reason": "Garlic and wheat bread are both high in fructans at this portion.",
            "calories": "~150 kcal",
            "protein": 4,
            "carbs": "20g",
            "fat": 6,
            "detailedFodmapProfile": {"fructans": "1.2", "lactose": None},
        }
        client = ScriptedClient(json.dumps(reply))
        out = await analyze_food_item(GARLIC_BREAD, client=client)

        self.assertEqual(out.overall_risk, "Red")
        self.assertEqual([s.ingredient for s in out.ingredient_fodmap_scores], ["Bread", "Garlic", "Butter"])
        butter = out.ingredient_fodmap_scores[2]
        self.assertEqual(butter.score, "Red")
        self.assertEqual(butter.reason, MISSING_INGREDIENT_REASON)
        self.assertEqual(out.calories, 150.0)
        self.assertEqual(out.carbs, 20.0)
        self.assertEqual(out.detailed_fodmap_profile.fructans, 1.2)
        self.assertIsNone(out.detailed_fodmap_profile.lactose)

        prompt = client.requests[0].prompt
        self.assertIn("Food Item: Garlic Bread", prompt)
        self.assertIn("Portion: 1 slice", prompt)

    async def test_scores_as_mapping_and_missing_reason(self) -> None:
        reply = {"ingredients": {"Rice": "Green"}, "overall_risk": "green"}
        with self.assertRaises(ModelOutputError):
            await analyze_food_item(
                {"foodItem": "Rice", "ingredients": "Rice", "portionSize": "1", "portionUnit": "cup"},
                client=ScriptedClient(json.dumps(reply)),
            )

        reply["reason"] = "Plain rice is low FODMAP."
        out = await analyze_food_item(
            {"foodItem": "Rice", "ingredients": "Rice", "portionSize": "1", "portionUnit": "cup"},
            client=ScriptedClient(json.dumps(reply)),
        )
        self.assertEqual(out.overall_risk, "Green")
        self.assertEqual(len(out.ingredient_fodmap_scores), 1)

    async def test_missing_portion_is_rejected_locally(self) -> None:
        client = ScriptedClient()
        with self.assertRaises(FlowInputError):
            await analyze_food_item({"foodItem": "Apple", "ingredients": "Apple", "portionUnit": "medium"}, client=client)
        self.assertEqual(client.calls, 0)

    async def test_coverage_matches_whole_words(self) -> None:
        reply = {
            "ingredientFodmapScores": [
                {"ingredient": "Eggplant", "score": "Green"},
                {"ingredient": "Fresh garlic", "score": "Red"},
            ],
            "overallRisk": "Red",
            "reason": "Garlic is high in fructans.",
        }
        out = await analyze_food_item(
            {"foodItem": "Baba ganoush", "ingredients": "Eggplant, Egg, Garlic", "portionSize": "1", "portionUnit": "bowl"},
            client=ScriptedClient(json.dumps(reply)),
        )
        self.assertEqual([s.ingredient for s in out.ingredient_fodmap_scores], ["Eggplant", "Fresh garlic", "Egg"])
        self.assertEqual(out.ingredient_fodmap_scores[2].reason, MISSING_INGREDIENT_REASON)

    async def test_blank_fields_are_rejected_locally(self) -> None:
        client = ScriptedClient()
        for field in ("foodItem", "portionSize", "portionUnit"):
            with self.assertRaises(FlowInputError):
                await analyze_food_item(dict(GARLIC_BREAD, **{field: "  "}), client=client)
        self.assertEqual(client.calls, 0)

    async def test_provider_failure_is_raised(self) -> None:
        client = ScriptedClient(ModelCallError("Model API error (503): overloaded", kind="overloaded", status_code=503))
        with self.assertRaises(ModelCallError):
            await analyze_food_item(GARLIC_BREAD, client=client)

    def test_ingredient_helpers(self) -> None:
        self.assertEqual(split_ingredients("Bread, butter;garlic\nBREAD"), ["Bread", "butter", "garlic"])
        self.assertEqual(estimate_profile_from_name("Toast"), estimate_profile_from_name("Toast"))
        self.assertNotEqual(estimate_profile_from_name("Toast"), estimate_profile_from_name("Oats"))


class TestSimilarity(unittest.IsolatedAsyncioTestCase):
    def _item(self, name: str, size: str = "1") -> dict:
        return {"name": name, "portionSize": size, "portionUnit": "cup", "fodmapProfile": {"fructans": 0.1}}

    async def test_no_safe_foods_answers_without_model(self) -> None:
        client = ScriptedClient()
        out = await is_similar_to_safe_foods({"currentFoodItem": self._item("Rice")}, client=client)
        self.assertFalse(out.is_similar)
        self.assertEqual(out.similarity_reason, NO_SAFE_FOODS_REASON)
        self.assertEqual(client.calls, 0)

    async def test_string_flags_are_normalized(self) -> None:
        client = ScriptedClient(json.dumps({"similar": "Yes", "reason": "Same rice, slightly larger portion."}))
        out = await is_similar_to_safe_foods(
            {"currentFoodItem": self._item("Rice", "0.75"), "userSafeFoodItems": [self._item("Rice", "0.5")]},
            client=client,
        )
        self.assertTrue(out.is_similar)
        self.assertEqual(out.similarity_reason, "Same rice, slightly larger portion.")
        self.assertIn("Portion: 0.5 cup", client.requests[0].prompt)


class TestImageIdentification(unittest.IsolatedAsyncioTestCase):
    async def test_invalid_data_uri_is_rejected_locally(self) -> None:
        client = ScriptedClient()
        for bad in ("data:text/plain;base64,aGk=", "data:image/png;base64,***", "https://example.com/a.png"):
            with self.assertRaises(FlowInputError):
                await identify_food_from_image({"imageDataUri": bad}, client=client)
        self.assertEqual(client.calls, 0)

    async def test_image_is_attached_and_ingredient_lists_are_joined(self) -> None:
        reply = {"identifiedFoodName": "Banana", "identifiedIngredients": ["Banana"], "estimatedPortionSize": 1}
        client = ScriptedClient(json.dumps(reply))
        out = await identify_food_from_image({"imageDataUri": PNG_URI, "userLocale": "en-US"}, client=client)
        self.assertTrue(out.recognition_success)
        self.assertEqual(out.identified_ingredients, "Banana")
        self.assertEqual(out.estimated_portion_size, "1")
        self.assertEqual(client.requests[0].image_data_uri, PNG_URI)
        self.assertEqual(client.requests[0].temperature, 0.2)

    async def test_failures_become_unsuccessful_recognition(self) -> None:
        out = await identify_food_from_image({"imageDataUri": PNG_URI}, client=ScriptedClient(""))
        self.assertFalse(out.recognition_success)
        self.assertEqual(out.error_message, NO_OUTPUT_MESSAGE)

        out = await identify_food_from_image(
            {"imageDataUri": PNG_URI},
            client=ScriptedClient(ModelCallError("Model request timed out", kind="timeout")),
        )
        self.assertFalse(out.recognition_success)
        self.assertEqual(out.error_message, "AI processing failed: Model request timed out")


class TestMealDescription(unittest.IsolatedAsyncioTestCase):
    async def test_structures_free_text(self) -> None:
        reply = {
            "wittyName": "The Midnight Mistake",
            "primaryFoodItemForAnalysis": "Fries and ice cream",
            "consolidatedIngredients": ["potatoes", "oil", "milk", "sugar"],
            "estimatedPortionSize": "1",
            "estimatedPortionUnit": "plate",
        }
        client = ScriptedClient(json.dumps(reply))
        out = await process_meal_description({"mealDescription": "Fries and ice cream at 2am"}, client=client)
        self.assertEqual(out.witty_name, "The Midnight Mistake")
        self.assertEqual(out.consolidated_ingredients, "potatoes, oil, milk, sugar")
        self.assertIn("Fries and ice cream at 2am", client.requests[0].prompt)

    async def test_too_short_description_is_rejected(self) -> None:
        client = ScriptedClient()
        with self.assertRaises(FlowInputError):
            await process_meal_description({"mealDescription": "ok"}, client=client)
        self.assertEqual(client.calls, 0)


class TestFeedbackTriage(unittest.IsolatedAsyncioTestCase):
    async def test_enum_drift_is_canonicalized(self) -> None:
        reply = {
            "aiSuggestedCategory": "feature request",
            "summaryTitle": "Dark mode please",
            "sentiment": "positive",
            "feasibility": "easy",
            "validity": "HIGH",
            "recommendedNextAction": "add to feature roadmap",
            "keywords": "dark mode, theme",
            "isFeatureRequest": True,
        }
        out = await process_feedback({"feedbackText": "Please add a dark mode!"}, client=ScriptedClient(json.dumps(reply)))
        self.assertEqual(out.ai_suggested_category, "Feature Request")
        self.assertEqual(out.recommended_next_action, "Add to Feature Roadmap")
        self.assertEqual(out.validity, "High")
        self.assertEqual(out.keywords, ["dark mode", "theme"])

    async def test_unknown_category_is_an_output_error(self) -> None:
        reply = {
            "aiSuggestedCategory": "Complaint",
            "summaryTitle": "x",
            "sentiment": "Negative",
            "feasibility": "Unknown",
            "validity": "Low",
            "recommendedNextAction": "Log Bug Ticket",
        }
        with self.assertRaises(ModelOutputError):
            await process_feedback({"feedbackText": "meh"}, client=ScriptedClient(json.dumps(reply)))


class TestSymptomCorrelations(unittest.IsolatedAsyncioTestCase):
    async def test_sparse_history_needs_more_data(self) -> None:
        client = ScriptedClient()
        out = await get_symptom_correlations({"foodLog": [_food(0), _food(1)], "symptomLog": []}, client=client)
        self.assertEqual(out.insights, [MORE_DATA_NEEDED])
        self.assertEqual(client.calls, 0)

    async def test_insights_are_normalized(self) -> None:
        reply = {
            "insights": [
                {
                    "type": "Potential Trigger",
                    "title": "Garlic",
                    "description": "Bloating followed garlic bread twice.",
                    "relatedFoodNames": "Garlic Bread",
                    "related_symptoms": ["Bloating"],
                    "confidence": "Medium",
                }
            ]
        }
        client = ScriptedClient(json.dumps(reply))
        data = {
            "foodLog": [_food(0), _food(1), _food(2)],
            "symptomLog": [
                {
                    "id": "s1",
                    "symptoms": [{"id": "bloating", "name": "Bloating"}],
                    "severity": 3,
                    "timestamp": "2026-10-01T15:00:00Z",
                }
            ],
            "safeFoods": [{"name": "Rice", "portionSize": "1", "portionUnit": "cup"}],
        }
        out = await get_symptom_correlations(data, client=client)
        insight = out.insights[0]
        self.assertEqual(insight.type, "potential_trigger")
        self.assertEqual(insight.related_food_names, ["Garlic Bread"])
        self.assertEqual(insight.related_symptoms, ["Bloating"])
        self.assertEqual(insight.confidence, "medium")
        prompt = client.requests[0].prompt
        self.assertIn("Severity: 3", prompt)
        self.assertIn("- Rice (Portion: 1 cup)", prompt)


class TestTextFlows(unittest.IsolatedAsyncioTestCase):
    async def test_dietitian_plain_text_answer(self) -> None:
        client = ScriptedClient("Try garlic-infused oil instead of fresh garlic.")
        out = await get_personalized_dietitian_insight({"userQuestion": "What can I use instead of garlic?"}, client=client)
        self.assertEqual(out.ai_response, "Try garlic-infused oil instead of fresh garlic.")
        self.assertFalse(client.requests[0].json_mode)

    async def test_prose_with_inline_json_is_kept(self) -> None:
        reply = 'Try logging meals like this: {"meal": "oats", "time": "8am"} and watch for bloating afterwards.'
        out = await get_personalized_dietitian_insight({"userQuestion": "How should I log?"}, client=ScriptedClient(reply))
        self.assertEqual(out.ai_response, reply)

        out = await get_personalized_dietitian_insight(
            {"userQuestion": "How should I log?"},
            client=ScriptedClient('Sure: {"answer": "Log every meal with a time."}'),
        )
        self.assertEqual(out.ai_response, "Log every meal with a time.")

        tip = 'Keep a note like {"food": "rice"} after each meal.'
        out = await get_user_recommendation({}, client=ScriptedClient(tip))
        self.assertEqual(out.recommendation_text, tip)

    async def test_dietitian_fallbacks(self) -> None:
        out = await get_personalized_dietitian_insight({"userQuestion": "Why?"}, client=ScriptedClient("   "))
        self.assertEqual(out.ai_response, NO_RESPONSE_TEXT)

        out = await get_personalized_dietitian_insight(
            {"userQuestion": "Why?"},
            client=ScriptedClient(ModelCallError("Model API error (401): bad key", kind="auth", status_code=401)),
        )
        self.assertIn("An error occurred while consulting the AI dietitian: Model API error (401): bad key.", out.ai_response)

    async def test_dietitian_empty_question_is_rejected(self) -> None:
        client = ScriptedClient()
        with self.assertRaises(FlowInputError):
            await get_personalized_dietitian_insight({"userQuestion": ""}, client=client)
        self.assertEqual(client.calls, 0)

    async def test_recommendation_text_and_fallbacks(self) -> None:
        client = ScriptedClient('"Slow down at dinner tonight; it can ease bloating."')
        out = await get_user_recommendation({"requestType": "Diet Tip"}, client=client)
        self.assertEqual(out.recommendation_text, "Slow down at dinner tonight; it can ease bloating.")
        self.assertIn("diet_tip", client.requests[0].prompt)

        out = await get_user_recommendation({}, client=ScriptedClient(""))
        self.assertEqual(out.recommendation_text, DEFAULT_RECOMMENDATION)

        out = await get_user_recommendation({}, client=ScriptedClient(ModelCallError("unreachable", kind="network")))
        self.assertEqual(out.recommendation_text, "Could not generate a recommendation: unreachable. Keep logging for future tips!")

    async def test_daily_insights_labelled_sections(self) -> None:
        reply = "**Trigger Insights:** Garlic at lunch stands out.\n**Overall Summary:** A mixed day."
        out = await get_daily_insights(
            {"foodLog": "Garlic bread, rice", "symptoms": "Bloating"},
            client=ScriptedClient(reply),
        )
        self.assertEqual(out.trigger_insights, "Garlic at lunch stands out.")
        self.assertEqual(out.micronutrient_feedback, "Micronutrient feedback not available.")
        self.assertEqual(out.overall_summary, "A mixed day.")

    async def test_daily_insights_fallback(self) -> None:
        out = await get_daily_insights({"foodLog": "Rice", "symptoms": "None"}, client=ScriptedClient(""))
        self.assertEqual(out.trigger_insights, DEFAULT_TRIGGER)
        self.assertEqual(out.micronutrient_feedback, DEFAULT_MICRONUTRIENT)
        self.assertEqual(out.overall_summary, DEFAULT_SUMMARY)


if __name__ == "__main__":
    unittest.main()
