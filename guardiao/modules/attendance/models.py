# Supabase tables: daily_attendance, attendance_records, absence_justifications
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

daily_attendance:
- id: uuid (primary key, default: gen_random_uuid())
- date: date (not null)
- sector: text (not null)
- call_type: text (not null) - INICIO or TERMINO
- responsible: text (nullable) - who took the roll call
- status: text (default: 'RASCUNHO') - RASCUNHO, ASSINADA
- signed_by: text (nullable)
- signed_at: timestamp (nullable)
- created_by: uuid (nullable, foreign key to users.id)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
- unique (date, sector, call_type)

attendance_records:
- id: uuid (primary key, default: gen_random_uuid())
- attendance_id: uuid (foreign key to daily_attendance.id, on delete cascade)
- militar_id: uuid (foreign key to users.id)
- militar_name: text - snapshot of users.war_name/name
- militar_rank: text - snapshot of users.rank
- saram: text
- status: text - presence code, see constants.PRESENCE_STATUS
- timestamp: timestamp
- unique (attendance_id, militar_id)

absence_justifications:
- id: uuid (primary key, default: gen_random_uuid())
- attendance_id: uuid (nullable, foreign key to daily_attendance.id)
- militar_id: uuid
- militar_name: text
- militar_rank: text
- saram: text
- original_status: text
- new_status: text
- justification: text (not null)
- performed_by: text - "RANK WARNAME" of the author
- timestamp: timestamp
- sector: text
- date: date
- call_type: text
"""
