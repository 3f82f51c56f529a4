# -*- coding: utf-8 -*-

from __future__ import annotations

import base64
import json
import shutil
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from support import ScriptedClient, auth_headers, load_app

ANALYSIS = {
    "ingredientFodmapScores": [{"ingredient": "Garlic", "score": "Red"}],
    "overallRisk": "Red",
    "reason": "Garlic is high in fructans.",
    "calories": 150,
}
GARLIC_BREAD = {"foodItem": "Garlic Bread", "ingredients": "Bread, Garlic", "portionSize": "1", "portionUnit": "slice"}
PNG_URI = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\nfake-image").decode("ascii")


class TestAiApi(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="gutdiary-test-"))
        app = load_app(cls._tmp)

        from gutdiary.flows.client import get_model_client  # noqa: WPS433

        cls.llm = ScriptedClient()
        app.dependency_overrides[get_model_client] = lambda: cls.llm
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            cls.client.close()
        except Exception:
            pass
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def setUp(self) -> None:
        self.llm.replies.clear()
        self.llm.requests.clear()

    def test_analyze_food_and_error_mapping(self) -> None:
        from gutdiary.flows.errors import ModelCallError  # noqa: WPS433

        headers = auth_headers("u-ai-analyze")
        self.llm.queue(json.dumps(ANALYSIS))
        resp = self.client.post("/api/ai/analyze-food", json=GARLIC_BREAD, headers=headers)
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["overallRisk"], "Red")
        self.assertEqual([s["ingredient"] for s in body["ingredientFodmapScores"]], ["Garlic", "Bread"])
        self.assertEqual(self.client.get("/api/timeline", headers=headers).json()["count"], 0)

        resp = self.client.post("/api/ai/analyze-food", json={"foodItem": "Apple"}, headers=headers)
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(self.llm.calls, 1)

        self.llm.queue(ModelCallError("Model API error (503): overloaded", kind="overloaded", status_code=503))
        resp = self.client.post("/api/ai/analyze-food", json=GARLIC_BREAD, headers=headers)
        self.assertEqual(resp.status_code, 502)
        self.assertIn("analyze_food_item", resp.json()["detail"])

    def test_similarity_without_safe_foods(self) -> None:
        item = {"name": "Rice", "portionSize": "1", "portionUnit": "cup", "fodmapProfile": {"fructans": 0}}
        resp = self.client.post(
            "/api/ai/food-similarity",
            json={"currentFoodItem": item, "userSafeFoodItems": []},
            headers=auth_headers("u-ai-similar"),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["isSimilar"])
        self.assertEqual(self.llm.calls, 0)

    def test_identify_food_image(self) -> None:
        headers = auth_headers("u-ai-image")
        resp = self.client.post("/api/ai/identify-food-image", json={"imageDataUri": "not-an-image"}, headers=headers)
        self.assertEqual(resp.status_code, 422)

        self.llm.queue("")
        resp = self.client.post("/api/ai/identify-food-image", json={"imageDataUri": PNG_URI}, headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["recognitionSuccess"])
        self.assertEqual(resp.json()["errorMessage"], "AI processing failed to return an output.")

    def test_correlations_need_history(self) -> None:
        resp = self.client.post("/api/ai/symptom-correlations", headers=auth_headers("u-ai-corr"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["insights"][0]["title"], "More Data Needed")
        self.assertEqual(self.llm.calls, 0)

    def test_correlations_use_the_timeline(self) -> None:
        headers = auth_headers("u-ai-corr-full")
        self.llm.queue(*[json.dumps(ANALYSIS)] * 3)
        for _ in range(3):
            body = dict(GARLIC_BREAD)
            body["name"] = body.pop("foodItem")
            self.assertEqual(self.client.post("/api/timeline/foods", json=body, headers=headers).status_code, 200)

        reply = {"insights": [{"type": "observation", "title": "Garlic often", "description": "Garlic bread three times."}]}
        self.llm.queue(json.dumps(reply))
        resp = self.client.post("/api/ai/symptom-correlations", headers=headers)
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["insights"][0]["title"], "Garlic often")
        prompt = self.llm.requests[-1].prompt
        self.assertEqual(prompt.count("- Food: Garlic Bread"), 3)
        self.assertIn("Overall Risk: Red", prompt)

    def test_recommendation_fills_recent_activity(self) -> None:
        self.llm.queue("Sip water slowly through the day.")
        resp = self.client.post("/api/ai/recommendation", json={"requestType": "general_wellness"}, headers=auth_headers("u-ai-tip"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["recommendationText"], "Sip water slowly through the day.")
        prompt = self.llm.requests[0].prompt
        self.assertIn("No food logged in the last day.", prompt)
        self.assertIn("User ID: u-ai-tip", prompt)

    def test_dietitian_sees_profile_and_history(self) -> None:
        headers = auth_headers("u-ai-dietitian", name="Robin")
        self.llm.queue(json.dumps(ANALYSIS))
        body = dict(GARLIC_BREAD)
        body["name"] = body.pop("foodItem")
        self.client.post("/api/timeline/foods", json=body, headers=headers)
        self.client.post("/api/timeline/symptoms", json={"symptomIds": ["bloating"], "severity": 4}, headers=headers)

        self.llm.queue("Garlic looks like a likely trigger; try garlic-infused oil.")
        resp = self.client.post("/api/ai/dietitian", json={"userQuestion": "What is upsetting my gut?"}, headers=headers)
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertIn("garlic-infused oil", resp.json()["aiResponse"])
        prompt = self.llm.requests[-1].prompt
        self.assertIn("Display Name: Robin", prompt)
        self.assertIn("- Meal: Garlic Bread", prompt)
        self.assertIn("- Symptoms: Bloating", prompt)

        resp = self.client.post("/api/ai/dietitian", json={"userQuestion": ""}, headers=headers)
        self.assertEqual(resp.status_code, 422)

    def test_daily_insights_and_meal_description(self) -> None:
        headers = auth_headers("u-ai-daily")
        self.llm.queue("Trigger Insights: None obvious.\nMicronutrient Feedback: Good vitamin C.\nOverall Summary: Calm day.")
        resp = self.client.post(
            "/api/ai/daily-insights",
            json={"foodLog": "Rice, chicken", "symptoms": "None", "micronutrientSummary": "High in vitamin C"},
            headers=headers,
        )
        self.assertEqual(resp.json(), {"triggerInsights": "None obvious.", "micronutrientFeedback": "Good vitamin C.", "overallSummary": "Calm day."})

        meal = {
            "wittyName": "Crisp Sadness",
            "primaryFoodItemForAnalysis": "Lettuce",
            "consolidatedIngredients": "lettuce",
            "estimatedPortionSize": "1",
            "estimatedPortionUnit": "bowl",
        }
        self.llm.queue(json.dumps(meal))
        resp = self.client.post("/api/ai/meal-description", json={"mealDescription": "Just lettuce"}, headers=headers)
        self.assertEqual(resp.json()["wittyName"], "Crisp Sadness")


if __name__ == "__main__":
    unittest.main()
