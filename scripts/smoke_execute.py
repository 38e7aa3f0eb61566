import os
import sys
import time

import requests
from colorama import init, Fore, Style

sys.path.append(os.path.dirname(os.path.abspath(__file__)))
from smoke_cases import SMOKE_CASES

init(autoreset=True)

API_BASE = os.getenv("LAB_API_BASE", "http://localhost:8000/api/v1")
# 服务端按客户端限流 (默认 1 秒)，两次请求之间留够间隔
PAUSE_S = float(os.getenv("SMOKE_PAUSE_S", "1.1"))


def check_health():
    resp = requests.get(f"{API_BASE}/health", timeout=20)
    data = resp.json()
    color = Fore.GREEN if data.get("oracleReady") else Fore.RED
    print(f"{color}🩺 container={data.get('containerRunning')} oracle={data.get('oracleReady')}")
    return data


def run_smoke():
    total = len(SMOKE_CASES)
    passed = 0

    print(f"{Fore.CYAN}🚀 开始冒烟测试 (共 {total} 个用例) -> {API_BASE}")
    print("=" * 60)
    check_health()

    for idx, case in enumerate(SMOKE_CASES):
        sql = case["sql"]
        expected = case["expected_status"]
        preview = " ".join(sql.split())[:40]

        print(f"Test [{idx + 1}/{total}] {case['type']}: {preview}...", end="", flush=True)

        try:
            resp = requests.post(f"{API_BASE}/execute", json={"sql": sql}, timeout=60)
            data = resp.json()

            if resp.status_code == expected:
                print(f"{Fore.GREEN} [PASS] {Style.RESET_ALL} HTTP {resp.status_code} ({data.get('executionTime')}ms)")
                passed += 1
            else:
                print(f"{Fore.RED} [FAIL] {Style.RESET_ALL}")
                print(f"    ❌ Expected: HTTP {expected}")
                print(f"    🔍 Actual:   HTTP {resp.status_code} {data.get('output', '')[:200]}")

        except Exception as e:
            print(f"{Fore.RED} [EXCEPTION] {e}")

        time.sleep(PAUSE_S)

    print("\n" + "=" * 60)
    print(f"{Fore.YELLOW}🏆 Passed {passed}/{total}")
    print("=" * 60)
    return passed == total


if __name__ == "__main__":
    sys.exit(0 if run_smoke() else 1)
