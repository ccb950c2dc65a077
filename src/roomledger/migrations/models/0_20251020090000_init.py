from tortoise import BaseDBAsyncClient


async def upgrade(db: BaseDBAsyncClient) -> str:
    return """
        CREATE TABLE IF NOT EXISTS "building" (
    "id" UUID NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "landlord_id" UUID NOT NULL,
    "name" VARCHAR(255) NOT NULL,
    "address" VARCHAR(255) NOT NULL DEFAULT '',
    "status" VARCHAR(8) NOT NULL DEFAULT 'active',
    "e_price" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "w_price" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "is_deleted" BOOL NOT NULL DEFAULT False
);
CREATE INDEX IF NOT EXISTS "idx_building_landlor_6f0e2a" ON "building" ("landlord_id");
COMMENT ON COLUMN "building"."status" IS 'ACTIVE: active\nINACTIVE: inactive';
COMMENT ON TABLE "building" IS 'A building owned by a landlord, with its current utility rates.';
CREATE TABLE IF NOT EXISTS "buildingservice" (
    "id" UUID NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "name" VARCHAR(100) NOT NULL,
    "label" VARCHAR(255),
    "description" VARCHAR(255),
    "charge_type" VARCHAR(10) NOT NULL DEFAULT 'fixed',
    "fee" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "is_deleted" BOOL NOT NULL DEFAULT False,
    "building_id" UUID NOT NULL REFERENCES "building" ("id") ON DELETE CASCADE
);
COMMENT ON COLUMN "buildingservice"."charge_type" IS 'FIXED: fixed\nPER_PERSON: per_person';
COMMENT ON TABLE "buildingservice" IS 'A recurring building service (internet, parking...) billed per room.';
CREATE TABLE IF NOT EXISTS "room" (
    "id" UUID NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "number" VARCHAR(50) NOT NULL,
    "status" VARCHAR(11) NOT NULL DEFAULT 'available',
    "e_baseline_index" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "w_baseline_index" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "is_deleted" BOOL NOT NULL DEFAULT False,
    "building_id" UUID NOT NULL REFERENCES "building" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_room_buildin_3c1d7e" UNIQUE ("building_id", "number")
);
COMMENT ON COLUMN "room"."status" IS 'AVAILABLE: available\nRENTED: rented\nMAINTENANCE: maintenance';
COMMENT ON TABLE "room" IS 'A rentable room. Baseline indices seed the room''s next reading.';
CREATE TABLE IF NOT EXISTS "contract" (
    "id" UUID NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "landlord_id" UUID NOT NULL,
    "tenant_id" UUID NOT NULL,
    "tenant_name" VARCHAR(255) NOT NULL DEFAULT '',
    "tenant_email" VARCHAR(255),
    "status" VARCHAR(18) NOT NULL DEFAULT 'draft',
    "rent_price" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "occupant_count" INT NOT NULL DEFAULT 1,
    "start_date" DATE NOT NULL,
    "end_date" DATE,
    "is_deleted" BOOL NOT NULL DEFAULT False,
    "building_id" UUID NOT NULL REFERENCES "building" ("id") ON DELETE CASCADE,
    "room_id" UUID NOT NULL REFERENCES "room" ("id") ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS "idx_contract_landlor_9a4c51" ON "contract" ("landlord_id");
CREATE INDEX IF NOT EXISTS "idx_contract_tenant__e27b03" ON "contract" ("tenant_id");
COMMENT ON COLUMN "contract"."status" IS 'DRAFT: draft\nREADY_FOR_SIGN: ready_for_sign\nSIGNED_BY_LANDLORD: signed_by_landlord\nSENT_TO_TENANT: sent_to_tenant\nCOMPLETED: completed\nTERMINATED: terminated';
COMMENT ON TABLE "contract" IS 'A lease of a room to a tenant. Read-only for the billing engine.';
CREATE TABLE IF NOT EXISTS "invoice" (
    "id" UUID NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "landlord_id" UUID NOT NULL,
    "tenant_id" UUID NOT NULL,
    "contract_id" UUID NOT NULL,
    "period_month" SMALLINT NOT NULL,
    "period_year" SMALLINT NOT NULL,
    "invoice_number" VARCHAR(32) NOT NULL,
    "items" JSONB NOT NULL,
    "subtotal" DECIMAL(16,2) NOT NULL DEFAULT 0,
    "discount_amount" DECIMAL(16,2) NOT NULL DEFAULT 0,
    "late_fee" DECIMAL(16,2) NOT NULL DEFAULT 0,
    "total_amount" DECIMAL(16,2) NOT NULL DEFAULT 0,
    "paid_amount" DECIMAL(16,2) NOT NULL DEFAULT 0,
    "currency" VARCHAR(8) NOT NULL DEFAULT 'VND',
    "status" VARCHAR(9) NOT NULL DEFAULT 'draft',
    "issued_at" TIMESTAMPTZ,
    "due_date" TIMESTAMPTZ,
    "sent_at" TIMESTAMPTZ,
    "paid_at" TIMESTAMPTZ,
    "cancelled_at" TIMESTAMPTZ,
    "payment_method" VARCHAR(14),
    "payment_ref" VARCHAR(255),
    "payment_note" TEXT,
    "email_to_override" VARCHAR(255),
    "email_status" VARCHAR(7),
    "email_sent_at" TIMESTAMPTZ,
    "email_last_error" TEXT,
    "note" TEXT,
    "internal_note" TEXT,
    "created_by_id" UUID,
    "updated_by_id" UUID,
    "period_guard" VARCHAR(8) DEFAULT 'taken',
    "building_id" UUID NOT NULL REFERENCES "building" ("id") ON DELETE CASCADE,
    "room_id" UUID NOT NULL REFERENCES "room" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_invoice_landlor_51b0c2" UNIQUE ("landlord_id", "room_id", "period_year", "period_month", "period_guard"),
    CONSTRAINT "uid_invoice_landlor_7d9e14" UNIQUE ("landlord_id", "invoice_number")
);
CREATE INDEX IF NOT EXISTS "idx_invoice_landlor_0c3f88" ON "invoice" ("landlord_id");
CREATE INDEX IF NOT EXISTS "idx_invoice_tenant__b6a2d9" ON "invoice" ("tenant_id");
CREATE INDEX IF NOT EXISTS "idx_invoice_contrac_4e71a0" ON "invoice" ("contract_id");
COMMENT ON COLUMN "invoice"."status" IS 'DRAFT: draft\nSENT: sent\nPAID: paid\nOVERDUE: overdue\nCANCELLED: cancelled\nREPLACED: replaced';
COMMENT ON COLUMN "invoice"."payment_method" IS 'CASH: cash\nONLINE_GATEWAY: online_gateway';
COMMENT ON COLUMN "invoice"."email_status" IS 'PENDING: pending\nSENT: sent\nFAILED: failed';
COMMENT ON TABLE "invoice" IS 'A bill for one room and period, owning its line items.';
CREATE TABLE IF NOT EXISTS "invoicecounter" (
    "id" UUID NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "landlord_id" UUID NOT NULL,
    "period_month" SMALLINT NOT NULL,
    "period_year" SMALLINT NOT NULL,
    "last_number" INT NOT NULL DEFAULT 0,
    CONSTRAINT "uid_invoicecou_landlor_a83f6b" UNIQUE ("landlord_id", "period_year", "period_month")
);
COMMENT ON TABLE "invoicecounter" IS 'Last issued invoice sequence for a landlord and period.';
CREATE TABLE IF NOT EXISTS "invoicehistory" (
    "id" UUID NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "action" VARCHAR(64) NOT NULL,
    "items_diff" JSONB,
    "meta_diff" JSONB,
    "updated_by_id" UUID,
    "invoice_id" UUID NOT NULL REFERENCES "invoice" ("id") ON DELETE CASCADE
);
COMMENT ON TABLE "invoicehistory" IS 'A recorded change to an invoice that was already sent to the tenant.';
CREATE TABLE IF NOT EXISTS "meterreading" (
    "id" UUID NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "landlord_id" UUID NOT NULL,
    "period_month" SMALLINT NOT NULL,
    "period_year" SMALLINT NOT NULL,
    "e_previous_index" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "e_current_index" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "e_consumption" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "e_unit_price" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "e_amount" DECIMAL(16,2) NOT NULL DEFAULT 0,
    "w_previous_index" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "w_current_index" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "w_consumption" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "w_unit_price" DECIMAL(14,2) NOT NULL DEFAULT 0,
    "w_amount" DECIMAL(16,2) NOT NULL DEFAULT 0,
    "status" VARCHAR(9) NOT NULL DEFAULT 'draft',
    "note" TEXT,
    "created_by_id" UUID,
    "confirmed_at" TIMESTAMPTZ,
    "confirmed_by_id" UUID,
    "invoice_id" UUID,
    "is_deleted" BOOL NOT NULL DEFAULT False,
    "deleted_at" TIMESTAMPTZ,
    "live_key" VARCHAR(8) DEFAULT 'taken',
    "building_id" UUID NOT NULL REFERENCES "building" ("id") ON DELETE CASCADE,
    "room_id" UUID NOT NULL REFERENCES "room" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_meterreadin_room_id_c58e02" UNIQUE ("room_id", "period_year", "period_month", "live_key")
);
CREATE INDEX IF NOT EXISTS "idx_meterreadin_landlor_2d7a19" ON "meterreading" ("landlord_id");
CREATE INDEX IF NOT EXISTS "idx_meterreadin_invoice_f4b360" ON "meterreading" ("invoice_id");
COMMENT ON COLUMN "meterreading"."status" IS 'DRAFT: draft\nCONFIRMED: confirmed\nBILLED: billed';
COMMENT ON TABLE "meterreading" IS 'Electricity and water indices of a room for a billing period.';
CREATE TABLE IF NOT EXISTS "paymentlog" (
    "id" UUID NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "gateway" VARCHAR(32) NOT NULL,
    "method" VARCHAR(64),
    "amount" DECIMAL(16,2) NOT NULL DEFAULT 0,
    "currency" VARCHAR(8) NOT NULL DEFAULT 'VND',
    "status" VARCHAR(16) NOT NULL,
    "trans_id" VARCHAR(128),
    "raw_payload" JSONB,
    "invoice_id" UUID REFERENCES "invoice" ("id") ON DELETE CASCADE
);
COMMENT ON TABLE "paymentlog" IS 'A payment attempt reported by a gateway, successful or not.';
CREATE TABLE IF NOT EXISTS "aerich" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "version" VARCHAR(255) NOT NULL,
    "app" VARCHAR(100) NOT NULL,
    "content" JSONB NOT NULL
);"""


async def downgrade(db: BaseDBAsyncClient) -> str:
    return """
        """
