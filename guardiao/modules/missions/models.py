# Supabase table: missoes_gsd
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

missoes_gsd:
- id: uuid (primary key, default: gen_random_uuid())
- solicitante_id: uuid (foreign key to users.id)
- dados_missao: jsonb - posto, nome_guerra, setor, tipo_missao, data, data_termino,
  inicio, termino, local, responsavel{nome, om, telefone}, efetivo, viaturas, alimentacao{...}
- status: text - RASCUNHO, PENDENTE, ESCALONADA, APROVADA, REJEITADA,
  AGUARDANDO_ORDEM, ATRIBUIDA, FINALIZADA
- parecer_sop: text (nullable) - decision remarks
- historico: jsonb (default: '[]') - list of
  {id, tipo: edicao|comentario|status, usuario, usuario_id, data,
   campo, valor_anterior, valor_novo, comentario}
- mission_order_id: uuid (nullable, foreign key to mission_orders.id)
- data_criacao: timestamp (default: now())
- updated_at: timestamp (default: now())
"""
