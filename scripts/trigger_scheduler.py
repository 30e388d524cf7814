"""Trigger one scheduler run over HTTP and print the JSON result.

Usage: python scripts/trigger_scheduler.py [base_url]
"""

import asyncio
import json
import os
import sys

import httpx

BASE_URL = os.getenv("SCHEDULER_BASE_URL", "http://localhost:8000")
SERVICE_ROLE_KEY = os.getenv("SERVICE_ROLE_KEY", "")


async def trigger_scheduler(base_url: str):
    if not SERVICE_ROLE_KEY:
        print("❌ SERVICE_ROLE_KEY não definida")
        print('Defina com: export SERVICE_ROLE_KEY="sua-chave-aqui"')
        sys.exit(1)

    url = f"{base_url.rstrip('/')}/whatsapp-message-scheduler"
    print(f"🚀 Executando agendador em {url}...\n")

    async with httpx.AsyncClient(timeout=120) as client:
        try:
            resp = await client.post(
                url,
                headers={"Authorization": f"Bearer {SERVICE_ROLE_KEY}", "Content-Type": "application/json"},
                json={},
            )
        except httpx.HTTPError as e:
            print(f"❌ Erro de conexão: {e}")
            sys.exit(1)

    print(f"Status HTTP: {resp.status_code}\n")
    try:
        print(json.dumps(resp.json(), indent=2, ensure_ascii=False))
    except ValueError:
        print(resp.text)

    if resp.is_success:
        print("\n✅ Agendador executado com sucesso!")
    else:
        print("\n❌ Erro na execução")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(trigger_scheduler(sys.argv[1] if len(sys.argv) > 1 else BASE_URL))
