from tortoise import BaseDBAsyncClient


async def upgrade(db: BaseDBAsyncClient) -> str:
    return """
        CREATE TABLE IF NOT EXISTS "users" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "email" VARCHAR(255) NOT NULL UNIQUE,
    "firstname" VARCHAR(100) NOT NULL,
    "lastname" VARCHAR(100),
    "is_admin" BOOL NOT NULL  DEFAULT False,
    "disabled" BOOL NOT NULL  DEFAULT False,
    "daily_action_limit" INT NOT NULL  DEFAULT 50,
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS "tags" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "name" VARCHAR(100) NOT NULL,
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "owner_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_tags_owner_i_6b1a0e" UNIQUE ("owner_id", "name")
);
CREATE TABLE IF NOT EXISTS "prospects" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "full_name" VARCHAR(255),
    "company" VARCHAR(255),
    "headline" VARCHAR(500),
    "location" VARCHAR(255),
    "email" VARCHAR(255),
    "profile_url" VARCHAR(500),
    "linkedin_id" VARCHAR(255),
    "connection_status" VARCHAR(50) NOT NULL  DEFAULT 'not_connected',
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "owner_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_prospects_owner_i_2f61c4" UNIQUE ("owner_id", "linkedin_id")
);
CREATE TABLE IF NOT EXISTS "prospect_tags" (
    "prospects_id" INT NOT NULL REFERENCES "prospects" ("id") ON DELETE CASCADE,
    "tag_id" INT NOT NULL REFERENCES "tags" ("id") ON DELETE CASCADE
);
CREATE UNIQUE INDEX IF NOT EXISTS "uidx_prospect_ta_prospec_8e0f3b" ON "prospect_tags" ("prospects_id", "tag_id");
CREATE TABLE IF NOT EXISTS "message_templates" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "name" VARCHAR(255) NOT NULL,
    "type" VARCHAR(50) NOT NULL  DEFAULT 'message',
    "subject" VARCHAR(255),
    "content" TEXT NOT NULL,
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "owner_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS "campaigns" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "name" VARCHAR(255) NOT NULL,
    "description" TEXT,
    "status" VARCHAR(20) NOT NULL  DEFAULT 'draft',
    "daily_limit" INT NOT NULL  DEFAULT 50,
    "total_prospects" INT NOT NULL  DEFAULT 0,
    "processed_prospects" INT NOT NULL  DEFAULT 0,
    "success_count" INT NOT NULL  DEFAULT 0,
    "failure_count" INT NOT NULL  DEFAULT 0,
    "started_at" TIMESTAMPTZ,
    "completed_at" TIMESTAMPTZ,
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "owner_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE,
    "tag_id" INT REFERENCES "tags" ("id") ON DELETE SET NULL
);
COMMENT ON COLUMN "campaigns"."status" IS 'DRAFT: draft\nACTIVE: active\nPAUSED: paused\nCOMPLETED: completed';
CREATE TABLE IF NOT EXISTS "campaign_steps" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "order" INT NOT NULL  DEFAULT 1,
    "action_type" VARCHAR(50) NOT NULL,
    "delay_days" INT NOT NULL  DEFAULT 0,
    "config" JSONB NOT NULL,
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "campaign_id" INT NOT NULL REFERENCES "campaigns" ("id") ON DELETE CASCADE,
    "message_template_id" INT REFERENCES "message_templates" ("id") ON DELETE SET NULL
);
CREATE TABLE IF NOT EXISTS "campaign_prospects" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "status" VARCHAR(20) NOT NULL  DEFAULT 'pending',
    "current_step" INT NOT NULL  DEFAULT 0,
    "total_steps" INT NOT NULL  DEFAULT 0,
    "failure_reason" TEXT,
    "last_action_at" TIMESTAMPTZ,
    "processed_at" TIMESTAMPTZ,
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "campaign_id" INT NOT NULL REFERENCES "campaigns" ("id") ON DELETE CASCADE,
    "prospect_id" INT NOT NULL REFERENCES "prospects" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_campaign_pr_campaig_4d7c2a" UNIQUE ("campaign_id", "prospect_id")
);
COMMENT ON COLUMN "campaign_prospects"."status" IS 'PENDING: pending\nIN_PROGRESS: in_progress\nCOMPLETED: completed\nFAILED: failed';
CREATE TABLE IF NOT EXISTS "action_queue" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "step_order" INT NOT NULL  DEFAULT 1,
    "action_type" VARCHAR(50) NOT NULL,
    "action_data" JSONB NOT NULL,
    "scheduled_for" TIMESTAMPTZ NOT NULL,
    "status" VARCHAR(20) NOT NULL  DEFAULT 'pending',
    "retry_count" INT NOT NULL  DEFAULT 0,
    "result" TEXT,
    "claimed_at" TIMESTAMPTZ,
    "executed_at" TIMESTAMPTZ,
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "owner_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE,
    "campaign_id" INT NOT NULL REFERENCES "campaigns" ("id") ON DELETE CASCADE,
    "campaign_prospect_id" INT NOT NULL REFERENCES "campaign_prospects" ("id") ON DELETE CASCADE,
    "prospect_id" INT NOT NULL REFERENCES "prospects" ("id") ON DELETE CASCADE,
    "step_id" INT REFERENCES "campaign_steps" ("id") ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS "idx_action_queu_status_5c9a41" ON "action_queue" ("status", "scheduled_for");
CREATE INDEX IF NOT EXISTS "idx_action_queu_campaig_b37e10" ON "action_queue" ("campaign_prospect_id", "step_order");
COMMENT ON COLUMN "action_queue"."status" IS 'PENDING: pending\nIN_PROGRESS: in_progress\nCOMPLETED: completed\nFAILED: failed';
CREATE TABLE IF NOT EXISTS "aerich" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "version" VARCHAR(255) NOT NULL,
    "app" VARCHAR(100) NOT NULL,
    "content" JSONB NOT NULL
);"""


async def downgrade(db: BaseDBAsyncClient) -> str:
    return """
        """
