#!/usr/bin/env python3
"""
Advisory Phone Verification Production Entry Point
"""

import os
import sys
import uvicorn
from dotenv import load_dotenv

# ---------------------------------------------------------
# Load Environment Variables
# ---------------------------------------------------------
load_dotenv()


# ---------------------------------------------------------
# Validate Required Environment Variables
# ---------------------------------------------------------
def check_environment():
    required_vars = [
        "SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE",
        "JWT_SECRET_KEY",
    ]

    print("\n🔍 Checking environment variables...")
    missing = []

    for var in required_vars:
        value = os.getenv(var)
        if not value:
            missing.append(var)
        else:
            if any(x in var for x in ["SECRET", "KEY", "ROLE"]):
                print(f"   ✅ {var}: [SET]")
            else:
                preview = value[:30] + ("..." if len(value) > 30 else "")
                print(f"   ✅ {var}: {preview}")

    if os.getenv("TWOFACTOR_API_KEY"):
        print("   ✅ TWOFACTOR_API_KEY: [SET]")
    else:
        print("   ⚠️  TWOFACTOR_API_KEY: not set, OTP requests will be refused")

    if os.getenv("OTP_SESSION_BACKEND", "memory").lower() == "redis" and not os.getenv("REDIS_URL"):
        missing.append("REDIS_URL")

    if missing:
        print(f"\n❌ Missing required environment variables: {', '.join(missing)}\n")
        return False

    print("✅ All environment variables are set\n")
    return True


# ---------------------------------------------------------
# Application Entry
# ---------------------------------------------------------
def main():
    if not check_environment():
        sys.exit(1)

    port = int(os.getenv("PORT", "8000"))

    print("=" * 60)
    print("📱 Advisory Phone Verification: Production Start")
    print("=" * 60)
    print(f"🌐 Port: {port}")
    print(f"🔗 Supabase URL: {os.getenv('SUPABASE_URL')}")
    print(f"🗄️  OTP Sessions: {os.getenv('OTP_SESSION_BACKEND', 'memory')}")
    print(f"⚡ Debug Mode: {os.getenv('DEBUG', 'False')}")
    print("=" * 60)

    uvicorn.run(
        "advisory.main:app",
        host="0.0.0.0",
        port=port,
        log_level="info",
        reload=os.getenv("DEBUG", "False").lower() == "true",
    )


if __name__ == "__main__":
    main()
