import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import ledger_core.managers


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        # ---------- Tenancy ----------
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("currency_code", models.CharField(default="USD", max_length=10)),
                ("opening_balances_posted", models.BooleanField(default=False)),
                ("opening_balances_posted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"verbose_name_plural": "companies"},
        ),
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(
                    default=False,
                    help_text="Designates that this user has all permissions without explicitly assigning them.",
                    verbose_name="superuser status",
                )),
                ("username", models.CharField(
                    error_messages={"unique": "A user with that username already exists."},
                    help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.",
                    max_length=150,
                    unique=True,
                    validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                    verbose_name="username",
                )),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email address")),
                ("is_staff", models.BooleanField(
                    default=False,
                    help_text="Designates whether the user can log into this admin site.",
                    verbose_name="staff status",
                )),
                ("is_active", models.BooleanField(
                    default=True,
                    help_text="Designates whether this user should be treated as active. Unselect this instead of deleting accounts.",
                    verbose_name="active",
                )),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("default_company", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="default_users", to="ledger_core.company",
                )),
                ("groups", models.ManyToManyField(
                    blank=True,
                    help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.",
                    related_name="user_set", related_query_name="user", to="auth.group", verbose_name="groups",
                )),
                ("user_permissions", models.ManyToManyField(
                    blank=True, help_text="Specific permissions for this user.",
                    related_name="user_set", related_query_name="user", to="auth.permission",
                    verbose_name="user permissions",
                )),
            ],
            options={
                "indexes": [models.Index(fields=["default_company"], name="user_default_company_idx")],
            },
            managers=[
                ("objects", ledger_core.managers.UserManager()),
            ],
        ),
        migrations.AddField(
            model_name="company",
            name="owner",
            field=models.ForeignKey(
                blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                related_name="owned_companies", to=settings.AUTH_USER_MODEL,
            ),
        ),
        migrations.CreateModel(
            name="EntityMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(
                    choices=[("owner", "Owner"), ("admin", "Admin"), ("accountant", "Accountant"),
                             ("hr_manager", "HR Manager"), ("viewer", "Viewer")],
                    default="viewer", max_length=20,
                )),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="memberships",
                    to="ledger_core.company",
                )),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="memberships",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [models.Index(fields=["company", "user"], name="member_company_user_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "company"), name="uq_user_company_membership"),
                ],
            },
        ),
        # ---------- Chart of accounts & journal ----------
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.PositiveIntegerField()),
                ("name", models.CharField(max_length=200)),
                ("account_type", models.CharField(
                    choices=[("Asset", "Asset"), ("Liability", "Liability"), ("Equity", "Equity"),
                             ("Income", "Income"), ("Expense", "Expense")],
                    max_length=10,
                )),
                ("description", models.CharField(blank=True, max_length=400)),
                ("is_active", models.BooleanField(default=True)),
                ("is_system", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("parent", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="children", to="ledger_core.account",
                )),
            ],
            options={
                "ordering": ("company", "code"),
                "indexes": [
                    models.Index(fields=["company", "account_type"], name="acct_company_type_idx"),
                    models.Index(fields=["company", "name"], name="acct_company_name_idx"),
                    models.Index(fields=["company", "parent"], name="acct_company_parent_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "code"), name="uq_company_account_code"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entry_date", models.DateField()),
                ("description", models.TextField(blank=True)),
                ("reference_type", models.CharField(
                    choices=[("Expense", "Expense"), ("Bill", "Bill"), ("BillPayment", "Bill payment"),
                             ("Invoice", "Invoice"), ("InvoicePayment", "Invoice payment"),
                             ("Payroll", "Payroll"), ("PayrollPayment", "Payroll payment"),
                             ("ManualEntry", "Manual entry"), ("OpeningBalance", "Opening balance")],
                    max_length=20,
                )),
                ("reference_id", models.CharField(blank=True, max_length=64)),
                ("debit_total", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("credit_total", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("is_posted", models.BooleanField(default=False)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("is_reversal", models.BooleanField(default=False)),
                ("reversal_reason", models.TextField(blank=True)),
                ("is_reversed", models.BooleanField(default=False)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("posted_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
                ("reversal_of", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="reversals", to="ledger_core.journalentry",
                )),
                ("reversal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
                ("reversed_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "verbose_name_plural": "journal entries",
                "indexes": [
                    models.Index(fields=["company", "entry_date"], name="je_company_date_idx"),
                    models.Index(fields=["company", "reference_type", "reference_id"], name="je_company_ref_idx"),
                    models.Index(fields=["company", "is_posted"], name="je_company_posted_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_number", models.PositiveIntegerField()),
                ("description", models.CharField(blank=True, max_length=400)),
                ("debit_amount", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("credit_amount", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("entry_date", models.DateField()),
                ("is_posted", models.BooleanField(default=False)),
                ("is_reversed", models.BooleanField(default=False)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("entry", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="lines",
                    to="ledger_core.journalentry",
                )),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to="ledger_core.account")),
                ("reversal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
            ],
            options={
                "ordering": ("entry_id", "line_number"),
                "indexes": [
                    models.Index(fields=["company", "account", "entry_date"], name="jl_company_account_date_idx"),
                    models.Index(fields=["company", "entry"], name="jl_company_entry_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("debit_amount__gte", 0), ("credit_amount__gte", 0)),
                        name="jl_non_negative_amounts",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("debit_amount__gt", 0), ("credit_amount", 0)),
                            models.Q(("debit_amount", 0), ("credit_amount__gt", 0)),
                            _connector="OR",
                        ),
                        name="jl_debit_xor_credit",
                    ),
                    models.UniqueConstraint(fields=("entry", "line_number"), name="uq_jl_entry_line_number"),
                ],
            },
        ),
        # ---------- Periods ----------
        migrations.CreateModel(
            name="Period",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("status", models.CharField(
                    choices=[("open", "Open"), ("closed", "Closed"), ("locked", "Locked")],
                    default="open", max_length=10,
                )),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to="ledger_core.company")),
            ],
            options={
                "ordering": ("company", "start_date"),
                "indexes": [
                    models.Index(fields=["company", "start_date"], name="period_company_start_idx"),
                    models.Index(fields=["company", "status"], name="period_company_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "name"), name="uq_company_period_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PeriodLock",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("is_locked", models.BooleanField(default=True)),
                ("status", models.CharField(
                    choices=[("open", "Open"), ("closed", "Closed"), ("locked", "Locked")],
                    default="locked", max_length=10,
                )),
                ("reason", models.CharField(blank=True, max_length=200)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="period_locks",
                    to="ledger_core.company",
                )),
            ],
            options={
                "indexes": [models.Index(fields=["company", "is_locked"], name="plock_company_locked_idx")],
            },
        ),
        # ---------- Banking ----------
        migrations.CreateModel(
            name="BankAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("account_number", models.CharField(blank=True, max_length=64)),
                ("current_balance", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("is_active", models.BooleanField(default=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("ledger_account", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="bank_accounts", to="ledger_core.account",
                )),
            ],
            options={
                "indexes": [models.Index(fields=["company", "ledger_account"], name="bank_company_ledger_idx")],
            },
        ),
        migrations.CreateModel(
            name="BankTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("transaction_date", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("direction", models.CharField(
                    choices=[("inflow", "Inflow"), ("outflow", "Outflow")], max_length=10,
                )),
                ("description", models.CharField(blank=True, max_length=255)),
                ("reference_type", models.CharField(max_length=40)),
                ("reference_id", models.CharField(blank=True, max_length=64)),
                ("is_reconciled", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("bank_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="transactions",
                    to="ledger_core.bankaccount",
                )),
                ("journal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="bank_transactions", to="ledger_core.journalentry",
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "transaction_date"], name="banktx_company_date_idx"),
                    models.Index(fields=["company", "reference_type", "reference_id"], name="banktx_company_ref_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="bt_amount_positive"),
                ],
            },
        ),
        # ---------- Counterparties ----------
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("is_active", models.BooleanField(default=True)),
                ("total_invoiced", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("total_received", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("outstanding_balance", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
            ],
            options={
                "indexes": [models.Index(fields=["company", "name"], name="cust_company_name_idx")],
            },
        ),
        migrations.CreateModel(
            name="Vendor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("is_active", models.BooleanField(default=True)),
                ("total_billed", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("total_paid", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("outstanding_payables", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
            ],
            options={
                "indexes": [models.Index(fields=["company", "name"], name="vendor_company_name_idx")],
            },
        ),
        # ---------- Inventory ----------
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("sku", models.CharField(blank=True, max_length=64)),
                ("is_active", models.BooleanField(default=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
            ],
            options={
                "indexes": [models.Index(fields=["company", "name"], name="prod_company_name_idx")],
            },
        ),
        migrations.CreateModel(
            name="InventoryItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity_on_hand", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("product", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE, related_name="inventory_item",
                    to="ledger_core.product",
                )),
            ],
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("movement_date", models.DateField()),
                ("direction", models.CharField(
                    choices=[("inflow", "Inflow"), ("outflow", "Outflow")], max_length=10,
                )),
                ("movement_type", models.CharField(
                    choices=[("issue", "Issue"), ("return", "Return")], max_length=10,
                )),
                ("quantity", models.DecimalField(decimal_places=2, max_digits=14)),
                ("reference_type", models.CharField(max_length=40)),
                ("reference_id", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("item", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="movements",
                    to="ledger_core.inventoryitem",
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "reference_type", "reference_id"], name="stock_company_ref_idx"),
                ],
            },
        ),
        # ---------- Payables ----------
        migrations.CreateModel(
            name="Bill",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("bill_number", models.CharField(blank=True, max_length=50)),
                ("bill_date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("description", models.CharField(blank=True, max_length=255)),
                ("total", models.DecimalField(decimal_places=2, max_digits=18)),
                ("amount_paid", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("status", models.CharField(
                    choices=[("Unpaid", "Unpaid"), ("Partially Paid", "Partially Paid"), ("Paid", "Paid"),
                             ("Overdue", "Overdue"), ("Void", "Void")],
                    default="Unpaid", max_length=20,
                )),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("vendor", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="bills", to="ledger_core.vendor",
                )),
                ("expense_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="+", to="ledger_core.account",
                )),
                ("journal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "status"], name="bill_company_status_idx"),
                    models.Index(fields=["company", "vendor"], name="bill_company_vendor_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BillPayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_date", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("notes", models.CharField(blank=True, max_length=255)),
                ("is_reversed", models.BooleanField(default=False)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("bill", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.bill",
                )),
                ("payment_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="+", to="ledger_core.account",
                )),
                ("journal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
                ("reversal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="bill_payment_amount_positive"),
                ],
            },
        ),
        # ---------- Receivables ----------
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_number", models.CharField(max_length=50)),
                ("invoice_date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("description", models.CharField(blank=True, max_length=255)),
                ("total", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("amount_paid", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("status", models.CharField(
                    choices=[("Unpaid", "Unpaid"), ("Partially Paid", "Partially Paid"), ("Paid", "Paid"),
                             ("Overdue", "Overdue"), ("Void", "Void")],
                    default="Unpaid", max_length=20,
                )),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("customer", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="ledger_core.customer",
                )),
                ("revenue_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="+", to="ledger_core.account",
                )),
                ("journal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "status"], name="inv_company_status_idx"),
                    models.Index(fields=["company", "customer"], name="inv_company_customer_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "invoice_number"), name="uq_invoice_company_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.CharField(blank=True, max_length=255)),
                ("quantity", models.DecimalField(decimal_places=2, default=1, max_digits=12)),
                ("unit_price", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("invoice", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="ledger_core.invoice",
                )),
                ("product", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.product",
                )),
            ],
            options={"ordering": ("invoice_id", "id")},
        ),
        migrations.CreateModel(
            name="InvoicePayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_date", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("notes", models.CharField(blank=True, max_length=255)),
                ("is_reversed", models.BooleanField(default=False)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("invoice", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.invoice",
                )),
                ("payment_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="+", to="ledger_core.account",
                )),
                ("journal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
                ("reversal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)), name="invoice_payment_amount_positive",
                    ),
                ],
            },
        ),
        # ---------- Expenses ----------
        migrations.CreateModel(
            name="ExpenseCategory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="expense_categories",
                    to="ledger_core.account",
                )),
            ],
            options={
                "verbose_name_plural": "expense categories",
                "constraints": [
                    models.UniqueConstraint(fields=("company", "name"), name="uq_expense_category_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Expense",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("expense_date", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("description", models.CharField(blank=True, max_length=255)),
                ("is_reversed", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("category", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    to="ledger_core.expensecategory",
                )),
                ("vendor", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="ledger_core.vendor",
                )),
                ("expense_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="+", to="ledger_core.account",
                )),
                ("payment_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="+", to="ledger_core.account",
                )),
                ("journal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [models.Index(fields=["company", "expense_date"], name="exp_company_date_idx")],
            },
        ),
        # ---------- Payroll ----------
        migrations.CreateModel(
            name="Employee",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("employee_number", models.CharField(blank=True, max_length=32)),
                ("full_name", models.CharField(max_length=200)),
                ("is_active", models.BooleanField(default=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
            ],
            options={
                "indexes": [models.Index(fields=["company", "employee_number"], name="emp_company_number_idx")],
            },
        ),
        migrations.CreateModel(
            name="PayrollRun",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("period_label", models.CharField(blank=True, max_length=80)),
                ("period_start", models.DateField()),
                ("period_end", models.DateField()),
                ("run_date", models.DateField()),
                ("status", models.CharField(
                    choices=[("draft", "Draft"), ("processed", "Processed"), ("paid", "Paid"),
                             ("reversed", "Reversed")],
                    default="draft", max_length=10,
                )),
                ("total_gross", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("total_deductions", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("total_advances", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("total_net", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("payment_date", models.DateField(blank=True, null=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("journal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
                ("payment_journal_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.journalentry",
                )),
                ("payment_account", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to="ledger_core.account",
                )),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [models.Index(fields=["company", "status"], name="payrun_company_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="PayrollItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("gross_salary", models.DecimalField(decimal_places=2, max_digits=18)),
                ("paye", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("other_deductions", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("advances_deducted", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("net_salary", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("payroll_run", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="items", to="ledger_core.payrollrun",
                )),
                ("employee", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="+", to="ledger_core.employee",
                )),
            ],
        ),
        migrations.CreateModel(
            name="Advance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("original_amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("remaining_balance", models.DecimalField(decimal_places=2, max_digits=18)),
                ("monthly_deduction", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("months_to_repay", models.PositiveIntegerField(default=0)),
                ("months_deducted", models.PositiveIntegerField(default=0)),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("partial", "Partially deducted"),
                             ("deducted", "Fully deducted")],
                    default="pending", max_length=10,
                )),
                ("date_to_deduct", models.DateField()),
                ("last_deducted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("employee", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="advances", to="ledger_core.employee",
                )),
                ("last_deducted_run", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to="ledger_core.payrollrun",
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "employee", "status"], name="adv_company_emp_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("remaining_balance__gte", 0),
                            ("remaining_balance__lte", models.F("original_amount")),
                        ),
                        name="advance_remaining_within_original",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayrollAdvanceDeduction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("deduction_key", models.CharField(max_length=120, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("balance_before", models.DecimalField(decimal_places=2, max_digits=18)),
                ("balance_after", models.DecimalField(decimal_places=2, max_digits=18)),
                ("months_before", models.PositiveIntegerField()),
                ("months_after", models.PositiveIntegerField()),
                ("month_increment", models.PositiveIntegerField()),
                ("status_before", models.CharField(
                    choices=[("pending", "Pending"), ("partial", "Partially deducted"),
                             ("deducted", "Fully deducted")],
                    max_length=10,
                )),
                ("status_after", models.CharField(
                    choices=[("pending", "Pending"), ("partial", "Partially deducted"),
                             ("deducted", "Fully deducted")],
                    max_length=10,
                )),
                ("is_reversed", models.BooleanField(default=False)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                ("skip_reason", models.CharField(blank=True, max_length=40)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("payroll_run", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="advance_deductions",
                    to="ledger_core.payrollrun",
                )),
                ("advance", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="deductions", to="ledger_core.advance",
                )),
                ("employee", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="+", to="ledger_core.employee",
                )),
                ("reversed_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [models.Index(fields=["company", "payroll_run"], name="advded_company_run_idx")],
            },
        ),
        # ---------- Audit ----------
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_id", models.CharField(max_length=64, unique=True)),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="ledger_core.company",
                )),
                ("user", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "user"], name="audit_company_user_idx"),
                    models.Index(fields=["company", "created_at"], name="audit_company_created_idx"),
                ],
            },
        ),
    ]
