import asyncio
import sys
from llm_fanout import settings
from llm_fanout.logging_setup import configure_logging
from llm_fanout.runner import ask_all

async def main():
    configure_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)

    user_prompt = " ".join(sys.argv[1:]).strip()
    if not user_prompt:
        user_prompt = input("Prompt: ").strip()

    result = await ask_all(user_prompt, system_prompt="You are a helpful assistant. Answer clearly.")
    for r in result.responses:
        print("\n" + "=" * 80)
        print(f"{r.provider} | {r.model_name} | {r.latency_ms} ms | error={bool(r.error)}")
        if r.error:
            print("ERROR:", r.error)
        else:
            print(r.text)
    print(f"\n{result.success_count}/{len(result.responses)} models responded in {result.total_latency_ms} ms")

if __name__ == "__main__":
    asyncio.run(main())
