EVM_ADDRESS = "0x" + "1" * 40
SOL_ADDRESS = "7" * 44
SOL_SIGNATURE = "5" * 88


def _user(client, email: str, name: str = "Test User") -> tuple[int, dict]:
    r = client.post("/api/auth/signup", json={"email": email, "password": "Testpass123!", "name": name})
    assert r.status_code == 201, r.text
    data = r.json()
    return data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}


def _tx(n: int) -> str:
    return "0x" + f"{n:064x}"


def _job(client, headers: dict) -> dict:
    r = client.post(
        "/api/jobs/",
        headers=headers,
        json={"title": "Solidity Dev", "description": "Contracts", "company": "Chain", "location": "Remote"},
    )
    assert r.status_code == 201, r.text
    return r.json()["job"]


def test_fees_are_public(client):
    r = client.get("/api/payments/fees")
    assert r.status_code == 200, r.text
    fees = r.json()
    assert fees["ethereum"]["currency"] == "ETH"
    assert fees["polygon"]["currency"] == "MATIC"
    assert fees["solana"] == {
        "amount": 0.0001,
        "currency": "SOL",
        "adminWallet": "So11111111111111111111111111111111111111112",
    }


def test_verify_eth_records_payment_and_marks_job(client):
    _, headers = _user(client, "payer@example.com")
    job = _job(client, headers)

    r = client.post(
        "/api/payments/verify-eth",
        headers=headers,
        json={"transactionHash": _tx(1), "blockchain": "polygon", "fromAddress": EVM_ADDRESS, "jobId": job["id"]},
    )
    assert r.status_code == 200, r.text
    payment = r.json()["payment"]
    assert payment["status"] == "confirmed"
    assert payment["currency"] == "MATIC"
    assert payment["purpose"] == "job_posting"
    assert payment["relatedJob"]["id"] == job["id"]

    updated = client.get(f"/api/jobs/{job['id']}").json()["job"]
    assert updated["paymentVerified"] is True
    assert updated["blockchain"] == "polygon"
    assert updated["transactionHash"] == _tx(1)


def test_duplicate_hash_is_rejected_and_recorded_once(client):
    _, first = _user(client, "first@example.com")
    _, second = _user(client, "second@example.com")
    body = {"transactionHash": _tx(2), "blockchain": "ethereum", "fromAddress": EVM_ADDRESS}

    assert client.post("/api/payments/verify-eth", headers=first, json=body).status_code == 200
    r = client.post("/api/payments/verify-eth", headers=second, json=body)
    assert r.status_code == 400
    assert r.json()["error"] == "Payment already recorded"

    assert len(client.get("/api/payments/history", headers=first).json()["payments"]) == 1
    assert client.get("/api/payments/history", headers=second).json()["payments"] == []


def test_verify_eth_rejects_bad_input(client):
    _, headers = _user(client, "badpay@example.com")
    r = client.post("/api/payments/verify-eth", headers=headers, json={"blockchain": "ethereum"})
    assert r.status_code == 400

    r = client.post(
        "/api/payments/verify-eth",
        headers=headers,
        json={"transactionHash": "0x123", "blockchain": "ethereum", "fromAddress": EVM_ADDRESS},
    )
    assert r.status_code == 400
    assert "transaction hash" in r.json()["error"].lower()

    r = client.post(
        "/api/payments/verify-eth",
        headers=headers,
        json={"transactionHash": _tx(3), "blockchain": "solana", "fromAddress": EVM_ADDRESS},
    )
    assert r.status_code == 400


def test_cannot_mark_someone_elses_job_paid(client):
    _, owner = _user(client, "jobown@example.com")
    _, payer = _user(client, "notowner@example.com")
    job = _job(client, owner)

    r = client.post(
        "/api/payments/verify-eth",
        headers=payer,
        json={"transactionHash": _tx(4), "blockchain": "ethereum", "fromAddress": EVM_ADDRESS, "jobId": job["id"]},
    )
    assert r.status_code == 400
    assert client.get("/api/payments/history", headers=payer).json()["payments"] == []
    assert client.get(f"/api/jobs/{job['id']}").json()["job"]["paymentVerified"] is False


def test_verify_sol(client):
    _, headers = _user(client, "solpayer@example.com")
    assert client.post("/api/payments/verify-sol", headers=headers, json={}).status_code == 400

    r = client.post(
        "/api/payments/verify-sol",
        headers=headers,
        json={"transactionSignature": SOL_SIGNATURE, "fromAddress": SOL_ADDRESS},
    )
    assert r.status_code == 200, r.text
    payment = r.json()["payment"]
    assert (payment["blockchain"], payment["currency"], payment["amount"]) == ("solana", "SOL", 0.0001)


def test_premium_subscription_sets_expiry(client):
    _, headers = _user(client, "premium@example.com")
    r = client.post(
        "/api/payments/premium-subscription",
        headers=headers,
        json={
            "transactionHash": _tx(5),
            "blockchain": "ethereum",
            "amount": 0.01,
            "currency": "eth",
            "fromAddress": EVM_ADDRESS,
            "durationMonths": 3,
        },
    )
    assert r.status_code == 200, r.text
    assert r.json()["expiresAt"]

    me = client.get("/api/auth/me", headers=headers).json()["user"]
    assert me["isPremium"] is True
    assert me["premiumExpiresAt"] is not None

    history = client.get("/api/payments/history", headers=headers).json()["payments"]
    assert [(p["purpose"], p["currency"]) for p in history] == [("premium_subscription", "ETH")]


def test_from_address_is_optional_but_checked_when_given(client):
    _, headers = _user(client, "noaddr@example.com")
    r = client.post(
        "/api/payments/verify-eth",
        headers=headers,
        json={"transactionHash": _tx(6), "blockchain": "ethereum"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["payment"]["fromAddress"] == ""

    r = client.post("/api/payments/verify-sol", headers=headers, json={"transactionSignature": "4" * 88})
    assert r.status_code == 200, r.text

    r = client.post(
        "/api/payments/verify-eth",
        headers=headers,
        json={"transactionHash": _tx(7), "blockchain": "ethereum", "fromAddress": SOL_ADDRESS},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid ethereum wallet address"
