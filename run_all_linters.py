#!/usr/bin/env python3
"""統一的檢查腳本，依序執行格式化檢查、靜態分析與測試。

執行順序：
1. Black 格式化檢查
2. isort 匯入排序檢查
3. Ruff 靜態檢查
4. Pylint 靜態分析
5. pytest 單元測試

加上 `--fast` 參數時略過 Pylint。
"""

from pathlib import Path
import subprocess
import sys

PACKAGES = ["app", "core", "infrastructure", "main.py"]


def run_command(cmd: list[str], description: str) -> tuple[bool, str]:
    """執行命令並返回成功狀態和輸出。"""
    print(f"\n{'='*60}")
    print(f"執行: {description}")
    print(f"命令: {' '.join(cmd)}")
    print("=" * 60)

    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, check=False, cwd=Path(__file__).parent
        )
    except OSError as e:
        print(f"❌ 執行錯誤: {e}")
        return False, str(e)

    success = result.returncode == 0
    output = result.stdout + result.stderr
    print("✅ 成功" if success else "❌ 失敗")
    if output.strip():
        print("\n輸出:")
        print(output)
    return success, output


def build_commands(fast: bool) -> list[tuple[list[str], str]]:
    """依參數組出要執行的命令清單。"""
    commands = [
        ([sys.executable, "-m", "black", ".", "--check"], "Black 格式化檢查"),
        ([sys.executable, "-m", "isort", ".", "--check-only"], "isort 匯入排序檢查"),
        ([sys.executable, "-m", "ruff", "check", "."], "Ruff 靜態檢查"),
    ]
    if not fast:
        commands.append(([sys.executable, "-m", "pylint", *PACKAGES], "Pylint 靜態分析"))
    commands.append(([sys.executable, "-m", "pytest", "-q"], "pytest 單元測試"))
    return commands


def main() -> None:
    """主函數：依序執行所有檢查並輸出總結。"""
    fast = "--fast" in sys.argv[1:]
    results = []
    for cmd, description in build_commands(fast):
        success, output = run_command(cmd, description)
        results.append((description, success, output))

    print(f"\n{'='*60}")
    print("總結報告")
    print("=" * 60)
    for description, success, _ in results:
        print(f"{description}: {'✅ 通過' if success else '❌ 失敗'}")

    all_passed = all(success for _, success, _ in results)
    print(f"\n整體結果: {'✅ 全部通過' if all_passed else '❌ 有錯誤'}")
    sys.exit(0 if all_passed else 1)


if __name__ == "__main__":
    main()
