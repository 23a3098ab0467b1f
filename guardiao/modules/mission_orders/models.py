# Supabase table: mission_orders
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

mission_orders:
- id: uuid (primary key, default: gen_random_uuid())
- omis_number: text (not null) - "{n}/GSD-SP", n restarts every calendar year
- date: date (not null)
- is_internal: boolean (default: true)
- mission: text (not null)
- location: text (not null)
- description: text (nullable)
- requester: text (nullable)
- transport: boolean (default: false)
- food: boolean (default: false)
- personnel: jsonb (default: '[]') - {id, function, rank, war_name, saram, uniform, armament, ammunition}
- schedule: jsonb (default: '[]') - {id, activity, location, date, time}
- permanent_orders: text (nullable)
- special_orders: text (nullable)
- created_by: text - name of the author
- created_by_id: uuid (foreign key to users.id)
- status: text - GERADA, PENDENTE_SOP, EM_ELABORACAO, AGUARDANDO_ASSINATURA,
  PRONTA_PARA_EXECUCAO, EM_MISSAO, CONCLUIDA, REJEITADA, CANCELADA
- timeline: jsonb (default: '[]') - {id, timestamp, user_id, user_name, text, type: STATUS_CHANGE|REPORT}
- mission_commander_id: uuid (nullable, foreign key to users.id)
- mission_request_id: uuid (nullable, foreign key to missoes_gsd.id)
- observation: text (nullable)
- ch_sop_signature: text (nullable)
- start_time: timestamp (nullable)
- end_time: timestamp (nullable)
- mission_report: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
"""
