# Supabase table: movimentacao_cautela
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

movimentacao_cautela:
- id: uuid (primary key, default: gen_random_uuid())
- id_material: uuid (foreign key to gestao_estoque.id)
- id_usuario: uuid (foreign key to users.id) - the militar holding the cautela
- quantidade: integer (default: 1)
- status: text - 'Pendente', 'Aprovado', 'Aguardando Confirmação', 'Em Uso',
  'Pendente Devolução', 'Concluído', 'Rejeitado'
- observacao: text (nullable) - request note, signature record or rejection reason
- autorizado_por: text (nullable) - "RANK WARNAME" of the approver
- entregue_por: text (nullable) - who handed the material over
- recebido_por: text (nullable) - who received it back
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
"""
