#!/usr/bin/env python3
"""
Tenant Onboarding Script

Creates a tenant with an API key, its pipeline stages and an admin seller.

Usage:
    python scripts/onboard_tenant.py --config tenant.json
    python scripts/onboard_tenant.py --slug mycompany --name "My Company"

Config file format:
    {
      "slug": "acme",
      "name": "Acme Ltd",
      "admin_name": "Jane Admin",
      "config": {"stage_rules": {"exempt": ["new", "sold", "lost"]}},
      "stages": [{"key": "new", "name": "New", "color": "bg-blue-500"}, ...]
    }
"""
import asyncio
import argparse
import json
import sys
import uuid

from sqlalchemy import select
import bcrypt

from leadboard.core.database import AsyncSessionLocal
from leadboard.core.seed import seed_admin, seed_stages
from leadboard.models import Stage, StageCategory, Tenant, TenantStatus


class TenantOnboarder:
    """Class to handle tenant onboarding"""

    def __init__(self):
        self.db = None
        self.tenant = None
        self.api_key = None
        self.admin = None

    async def __aenter__(self):
        self.db = AsyncSessionLocal()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.db:
            await self.db.close()

    async def create_tenant(
        self,
        slug: str,
        name: str,
        config: dict = None,
        status: str = "active"
    ) -> Tenant:
        """
        Create a new tenant and generate its API key.

        Only the bcrypt hash and an 8 character prefix are stored.
        """
        print(f"\n📦 Creating tenant: {slug}")

        result = await self.db.execute(
            select(Tenant).where(Tenant.slug == slug)
        )
        if result.scalar_one_or_none():
            print(f"❌ Tenant '{slug}' already exists!")
            raise ValueError(f"Tenant '{slug}' already exists")

        self.api_key = f"{slug[:2]}_{uuid.uuid4().hex[:32]}"
        api_key_hash = bcrypt.hashpw(self.api_key.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

        self.tenant = Tenant(
            id=uuid.uuid4(),
            slug=slug,
            name=name,
            config=config or {},
            api_key_hash=api_key_hash,
            api_key_prefix=self.api_key[:8],
            status=TenantStatus(status)
        )
        self.db.add(self.tenant)
        await self.db.flush()

        print(f"✅ Tenant created: {self.tenant.id}")
        return self.tenant

    async def create_stages(self, stages_data: list = None) -> int:
        """Custom stages from the config, or the default pipeline"""
        if not stages_data:
            created = await seed_stages(self.db, self.tenant)
            print(f"\n📋 Created {created} default stages")
            return created

        print(f"\n📋 Creating {len(stages_data)} stages...")
        for order, stage_data in enumerate(stages_data, start=1):
            stage = Stage(
                tenant_id=self.tenant.id,
                key=stage_data["key"],
                name=stage_data["name"],
                color=stage_data.get("color", "bg-blue-500"),
                category=StageCategory(stage_data.get("category", "normal")),
                display_order=order,
            )
            self.db.add(stage)
            print(f"  ✅ Stage {order}: {stage.name} ({stage.key})")

        await self.db.flush()
        return len(stages_data)

    async def onboard(self, config: dict):
        try:
            await self.create_tenant(
                slug=config["slug"],
                name=config["name"],
                config=config.get("config"),
                status=config.get("status", "active")
            )
            await self.create_stages(config.get("stages"))
            self.admin = await seed_admin(self.db, self.tenant, config.get("admin_name", "Administrator"))
            await self.db.commit()

            self.print_summary()

        except Exception as e:
            print(f"\n❌ Error during onboarding: {e}")
            await self.db.rollback()
            raise

    def print_summary(self):
        """Print onboarding summary with credentials"""
        print("\n" + "=" * 80)
        print("✅ TENANT ONBOARDING COMPLETED SUCCESSFULLY")
        print("=" * 80)
        print(f"\nTenant ID:     {self.tenant.id}")
        print(f"Tenant Slug:   {self.tenant.slug}")
        print(f"Tenant Name:   {self.tenant.name}")
        print(f"Admin seller:  {self.admin.id if self.admin else '-'}")
        print(f"\n🔑 API KEY:    {self.api_key}")
        print(f"   (Prefix:    {self.tenant.api_key_prefix}...)")
        print("\n⚠️  SAVE THIS API KEY! It will not be shown again.")
        print("\n" + "-" * 80)
        print("TEST CURL COMMAND:")
        print("-" * 80)
        print(f"""
curl http://localhost:8000/api/v1/board \\
  -H "X-Tenant-ID: {self.tenant.slug}" \\
  -H "X-API-Key: {self.api_key}" \\
  -H "X-User-ID: {self.admin.id if self.admin else '<seller id>'}"
""")
        print("=" * 80 + "\n")


async def onboard_from_config(config_path: str):
    print(f"📄 Loading config from: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    for field in ("slug", "name"):
        if field not in config:
            raise ValueError(f"Missing required field in config: {field}")

    async with TenantOnboarder() as onboarder:
        await onboarder.onboard(config)


async def onboard_simple(slug: str, name: str):
    async with TenantOnboarder() as onboarder:
        await onboarder.onboard({"slug": slug, "name": name, "status": "active"})


def main():
    parser = argparse.ArgumentParser(
        description="Onboard a new tenant to the CRM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=str, help="Path to JSON config file")
    parser.add_argument("--slug", type=str, help="Tenant slug (URL-safe identifier)")
    parser.add_argument("--name", type=str, help="Tenant name (display name)")

    args = parser.parse_args()

    if args.config:
        asyncio.run(onboard_from_config(args.config))
    elif args.slug and args.name:
        asyncio.run(onboard_simple(args.slug, args.name))
    else:
        parser.print_help()
        print("\n❌ Error: Either --config or both --slug and --name are required")
        sys.exit(1)


if __name__ == "__main__":
    main()
