# pageflow/core/samples.py
# Demo traces served by GET /graph/sample and the `sample` CLI command.

SAMPLE_TEST_CASES = [
    {
        "id": "TS-001",
        "name": "Login flow",
        "steps": [
            {"index": 1, "page": "/login", "action": "navigate"},
            {"index": 2, "page": "/login", "action": "fill_email"},
            {"index": 3, "page": "/dashboard", "action": "redirect"},
        ],
    },
    {
        "id": "TS-002",
        "name": "Forgot password",
        "steps": [
            {"index": 1, "page": "/login", "action": "navigate"},
            {"index": 2, "page": "/forgot-password", "action": "click_link"},
            {"index": 3, "page": "/reset", "action": "submit_form"},
        ],
    },
    {
        "id": "TS-003",
        "name": "Signup",
        "steps": [
            {"index": 1, "page": "/signup", "action": "navigate"},
            {"index": 2, "page": "/signup", "action": "fill_form"},
            {"index": 3, "page": "/welcome", "action": "redirect"},
        ],
    },
]
