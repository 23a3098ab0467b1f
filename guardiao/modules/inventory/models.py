# Supabase table: gestao_estoque
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

gestao_estoque:
- id: uuid (primary key, default: gen_random_uuid())
- material: text (not null)
- tipo_de_material: text (not null) - one of constants.MATERIAL_TYPES
- setor: text (not null) - storage sector, one of constants.GESTAO_MATERIAL_SETORES
- qtdisponivel: integer (default: 0) - quantity on the shelf
- saida: integer (default: 0) - units written off (lost while on loan)
- status: text (default: 'DISPONIVEL') - DISPONIVEL, MANUTENCAO, BAIXADO
- descricao: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
"""
