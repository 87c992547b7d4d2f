"""
SkillHub 包入口点 - 支持 `python -m skillhub` 调用
"""

from skillhub.main import app

if __name__ == "__main__":
    app()
